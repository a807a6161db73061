"""Credential relay run by git (GIT_ASKPASS) or ssh (SSH_ASKPASS).

Usage: relay.py SOCKET_PATH PROMPT...

Asks the broker listening on SOCKET_PATH for the secret matching PROMPT and
prints it on stdout. Exits 1 when the broker has no answer, which makes git
report an authentication failure instead of hanging on a prompt.

This file runs as a standalone script and imports only the standard library.
"""

import json
import socket
import sys

TIMEOUT_SECONDS = 30


def request_secret(socket_path, prompt):
    """Send one request to the broker and return its decoded response."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(TIMEOUT_SECONDS)
        sock.connect(socket_path)
        sock.sendall(json.dumps({"prompt": prompt}).encode("utf-8") + b"\n")
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
            if chunk.endswith(b"\n"):
                break
    return json.loads(b"".join(chunks).decode("utf-8"))


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("gitbridge relay: missing socket path", file=sys.stderr)
        return 1

    socket_path = argv[0]
    prompt = " ".join(argv[1:])
    try:
        response = request_secret(socket_path, prompt)
    except (OSError, ValueError) as e:
        print(f"gitbridge relay: {e}", file=sys.stderr)
        return 1

    if not isinstance(response, dict) or not response.get("ok"):
        error = response.get("error") if isinstance(response, dict) else "bad response"
        print(f"gitbridge relay: {error}", file=sys.stderr)
        return 1

    sys.stdout.write(str(response.get("secret", "")) + "\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
