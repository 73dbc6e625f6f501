"""launch_taskboard.py
One-shot launcher for the task board.

Sets up a private virtualenv next to this file, installs the project into it
(pip resolves the pinned requirements from pyproject.toml, so an up-to-date
environment costs one quick no-op install), starts ``taskboard.server`` as a
child process, waits for /api/data to answer and opens the board in the
browser. The server log is streamed to this console until it exits.

Usage:
    python launch_taskboard.py
Env vars:
    TASKBOARD_VENV  Path for virtualenv dir (default .venv)
    TASKBOARD_DATA  JSON document path handed to the server (default data.json)
"""
from __future__ import annotations

import http.client
import os
import subprocess
import sys
import time
import venv
import webbrowser
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
PORT = 57891
HEALTH_PATH = "/api/data"


def venv_python(env_dir: Path) -> Path:
    if os.name == "nt":
        return env_dir / "Scripts" / "python.exe"
    return env_dir / "bin" / "python"


def ensure_venv(env_dir: Path) -> Path:
    python = venv_python(env_dir)
    if not python.exists():
        print(f"[+] Creating virtualenv at {env_dir}")
        venv.create(env_dir, with_pip=True)
    if not python.exists():
        sys.exit(f"❌ No interpreter at {python}")
    return python


def install_project(python: Path, base: Path = BASE_DIR) -> None:
    print("[+] Installing task board into the virtualenv")
    subprocess.check_call([str(python), "-m", "pip", "install", "--quiet", "-e", str(base)])


def server_env(data_file: Path) -> dict:
    env = dict(os.environ)
    env["TASKBOARD_DATA"] = str(data_file)
    env["PYTHONUNBUFFERED"] = "1"
    return env


def start_server(python: Path, data_file: Path, base: Path = BASE_DIR) -> subprocess.Popen:
    print(f"[✓] Starting server on port {PORT} (data: {data_file})")
    return subprocess.Popen(
        [str(python), "-m", "taskboard.server"],
        cwd=base,
        env=server_env(data_file),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )


def backend_answers(port: int) -> bool:
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=1)
    try:
        conn.request("GET", HEALTH_PATH)
        return conn.getresponse().status == 200
    except (http.client.HTTPException, OSError):
        return False
    finally:
        conn.close()


def wait_until_up(port: int, timeout: float = 15, interval: float = 0.5) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if backend_answers(port):
            return True
        time.sleep(interval)
    return False


def main():
    env_dir = Path(os.getenv("TASKBOARD_VENV", BASE_DIR / ".venv")).resolve()
    data_file = Path(os.getenv("TASKBOARD_DATA", BASE_DIR / "data.json")).resolve()

    python = ensure_venv(env_dir)
    install_project(python)
    proc = start_server(python, data_file)

    if not wait_until_up(PORT):
        print("❌ Server did not answer within timeout.")
        proc.terminate()
        sys.exit(1)

    url = f"http://localhost:{PORT}/"
    print(f"[🌐] Opening {url}")
    webbrowser.open(url)

    try:
        for line in proc.stdout:  # type: ignore[union-attr]
            print(line, end="")
    except KeyboardInterrupt:
        proc.terminate()
    finally:
        proc.wait()


if __name__ == "__main__":
    main()
