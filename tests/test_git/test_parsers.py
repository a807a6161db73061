"""Tests for git output parsers."""

import pytest

from gitbridge.git.models import Remote
from gitbridge.git.parsers import (
    LOG_FORMAT,
    clean_filename,
    parse_branches,
    parse_count,
    parse_filenames,
    parse_log,
    parse_ls_files,
    parse_remotes,
    parse_status_header,
    parse_status_line,
    parse_version,
)


class TestCleanFilename:
    """Tests for clean_filename."""

    def test_bare_name_unchanged(self):
        assert clean_filename("src/app.py") == "src/app.py"

    def test_quotes_stripped(self):
        assert clean_filename('"a file.txt"') == "a file.txt"

    def test_escapes_decoded(self):
        assert clean_filename('"tab\\there"') == "tab\there"
        assert clean_filename('"say \\"hi\\""') == 'say "hi"'

    def test_octal_utf8_decoded(self):
        # git writes non-ASCII bytes as octal escapes
        assert clean_filename('"caf\\303\\251.txt"') == "café.txt"


class TestParseFilenames:
    """Tests for splitting rename arrows."""

    def test_single_name(self):
        assert parse_filenames("file.txt") == ["file.txt"]

    def test_rename(self):
        assert parse_filenames("old.txt -> new.txt") == ["old.txt", "new.txt"]

    def test_quoted_name_with_arrow_is_not_split(self):
        assert parse_filenames('"un -> known.txt"') == ["un -> known.txt"]

    def test_quoted_names_on_both_sides(self):
        names = parse_filenames('"test with space" -> "un -> knownFile.txt"')
        assert names == ["test with space", "un -> knownFile.txt"]

    def test_quoted_old_bare_new(self):
        assert parse_filenames('"test with space" -> knownFile.txt') == [
            "test with space",
            "knownFile.txt",
        ]


class TestParseStatusHeader:
    """Tests for the ## branch line."""

    def test_local_only(self):
        header = parse_status_header("## main")
        assert header.local == "main"
        assert header.remote is None
        assert header.ahead is None
        assert header.behind is None
        assert header.gone is False

    def test_ahead_and_behind(self):
        header = parse_status_header("## main...origin/main [ahead 2, behind 1]")
        assert header.local == "main"
        assert header.remote == "origin/main"
        assert header.ahead == 2
        assert header.behind == 1

    def test_behind_only(self):
        header = parse_status_header("## dev...origin/dev [behind 4]")
        assert header.ahead is None
        assert header.behind == 4

    def test_tracking_in_sync(self):
        header = parse_status_header("## main...origin/main")
        assert header.remote == "origin/main"
        assert header.ahead is None

    def test_gone(self):
        header = parse_status_header("## main...origin/main [gone]")
        assert header.remote == "origin/main"
        assert header.gone is True

    def test_no_commits_yet(self):
        header = parse_status_header("## No commits yet on main")
        assert header.local == "main"

    def test_not_a_header(self):
        assert parse_status_header("M  file.txt") is None


class TestParseStatusLine:
    """Tests for porcelain file lines."""

    def test_modified(self):
        line = parse_status_line(" M src/app.py")
        assert line.status == " M"
        assert line.path == "src/app.py"
        assert line.old_name is None

    def test_rename(self):
        line = parse_status_line("R  old.txt -> new.txt")
        assert line.path == "new.txt"
        assert line.old_name == "old.txt"

    def test_quoted_untracked(self):
        line = parse_status_line('?? "a file.txt"')
        assert line.status == "??"
        assert line.path == "a file.txt"

    def test_untracked_name_containing_arrow(self):
        line = parse_status_line('?? "a -> b.txt"')
        assert line.path == "a -> b.txt"
        assert line.old_name is None

    @pytest.mark.parametrize("line", ["", "M", "XYZ"])
    def test_malformed_lines_skipped(self, line):
        assert parse_status_line(line) is None


class TestSimpleParsers:
    """Tests for ls-files, counts and versions."""

    def test_parse_ls_files(self):
        output = 'README.md\nsrc/app.py\n"with space.txt"\n'
        assert parse_ls_files(output) == ["README.md", "src/app.py", "with space.txt"]

    def test_parse_count(self):
        assert parse_count("42\n") == 42

    def test_parse_version(self):
        assert parse_version("git version 2.43.0\n") == "2.43.0"

    def test_parse_version_with_suffix(self):
        assert parse_version("git version 2.39.3 (Apple Git-145)") == "2.39.3"

    def test_parse_version_garbage(self):
        assert parse_version("not git") is None


class TestParseRemotes:
    """Tests for git remote -v parsing."""

    def test_fetch_and_push(self):
        output = "origin\thttps://x/y.git (fetch)\norigin\thttps://x/y.git (push)\n"
        assert parse_remotes(output) == {
            "origin": Remote(fetch="https://x/y.git", push="https://x/y.git"),
        }

    def test_multiple_remotes_with_different_urls(self):
        output = (
            "origin\tgit@host:me/repo.git (fetch)\n"
            "origin\tgit@host:me/repo.git (push)\n"
            "upstream\thttps://host/them/repo.git (fetch)\n"
            "upstream\tno_push (push)\n"
        )
        remotes = parse_remotes(output)
        assert set(remotes) == {"origin", "upstream"}
        assert remotes["upstream"].fetch == "https://host/them/repo.git"
        assert remotes["upstream"].push == "no_push"

    def test_empty_output_is_absent(self):
        assert parse_remotes("") is None
        assert parse_remotes("\n") is None

    def test_unrecognized_output_is_absent(self):
        assert parse_remotes("warning: not a remote listing\n") is None
        assert parse_remotes("origin https://x/y.git\n") is None


class TestParseBranches:
    """Tests for git branch -vv parsing."""

    def test_current_branch_with_tracking(self):
        output = (
            "* main    1a2b3c4 [origin/main: ahead 2, behind 1] Add feature\n"
            "  dev     5d6e7f8 [origin/dev] Work in progress\n"
            "  topic   9a8b7c6 Local only\n"
        )
        branches = parse_branches(output)
        assert [b.name for b in branches] == ["main", "dev", "topic"]

        main = branches[0]
        assert main.current is True
        assert main.remote == "origin/main"
        assert main.status.ahead == 2
        assert main.status.behind == 1
        assert main.commit.sha == "1a2b3c4"
        assert main.commit.subject == "Add feature"

        dev = branches[1]
        assert dev.current is False
        assert dev.remote == "origin/dev"
        assert dev.status.ahead == 0

        topic = branches[2]
        assert topic.remote is None
        assert topic.commit.subject == "Local only"

    def test_gone_upstream(self):
        branches = parse_branches("  old 1a2b3c4 [origin/old: gone] Stale work\n")
        assert branches[0].remote == "origin/old"
        assert branches[0].commit.subject == "Stale work"

    def test_symbolic_refs_discarded(self):
        output = (
            "  origin/HEAD -> origin/main\n"
            "  origin/main 1a2b3c4 Add feature\n"
        )
        branches = parse_branches(output)
        assert [b.name for b in branches] == ["origin/main"]

    def test_detached_head_discarded(self):
        output = "* (HEAD detached at 1a2b3c4) 1a2b3c4 Add feature\n  main 1a2b3c4 Add feature\n"
        assert [b.name for b in parse_branches(output)] == ["main"]


class TestParseLog:
    """Tests for the custom log record format."""

    def test_format_template_fields(self):
        for field in ("sha", "parents", "refs", "author", "date", "subject"):
            assert f"{field}: " in LOG_FORMAT

    def test_records(self):
        output = (
            "sha: bbbb\n"
            "parents: aaaa cccc\n"
            "refs: HEAD -> main, origin/main ,tag: v1\n"
            "author: Jane Doe\n"
            "date: 1700000000\n"
            "subject: Merge branch: fix things\n"
            "-----\n"
            "sha: aaaa\n"
            "parents: \n"
            "refs: \n"
            "author: John\n"
            "date: 1600000000\n"
            "subject: Initial commit\n"
            "-----\n"
        )
        commits = parse_log(output)
        assert [c.sha for c in commits] == ["bbbb", "aaaa"]

        merge = commits[0]
        assert merge.parents == ["aaaa", "cccc"]
        assert merge.refs == ["HEAD -> main", "origin/main", "tag: v1"]
        assert merge.author == "Jane Doe"
        assert merge.date == "1700000000"
        assert merge.subject == "Merge branch: fix things"

        root = commits[1]
        assert root.parents == []
        assert root.refs == []

    def test_empty_output(self):
        assert parse_log("") == []
