"""
Launch script for FOSSInvoice.

Checks dependencies, prepares the database and starts the HTTP API.

Usage:
    python run.py [path/to/invoices.sqlite]
"""
import os
import sys
import threading
import time
import urllib.error
import urllib.request
import webbrowser

HOST = os.environ.get("FOSSINVOICE_HOST", "127.0.0.1")
PORT = int(os.environ.get("FOSSINVOICE_PORT", "8000"))
APP_URL = f"http://{HOST}:{PORT}"
DOCS_URL = f"{APP_URL}/docs"


def _print(msg: str) -> None:
    print(f"[run] {msg}")


def check_python_deps() -> bool:
    """Check that required Python packages are installed."""
    missing = []
    for pkg in ["fastapi", "uvicorn", "reportlab"]:
        try:
            __import__(pkg)
        except ImportError:
            missing.append(pkg)

    if missing:
        _print(f"Missing Python packages: {', '.join(missing)}")
        _print("Install with: pip install -e .[dev]")
        return False
    return True


def prepare_database(db_path: str | None) -> bool:
    """Create or migrate the database the API will serve."""
    from fossinvoice.invoicing.storage.database import init_database
    from fossinvoice.web.dependencies import get_database_path

    if db_path:
        os.environ["FOSSINVOICE_DB_PATH"] = db_path
    path = get_database_path()
    try:
        init_database(path)
    except Exception as e:
        _print(f"ERROR: cannot open database at {path}: {e}")
        return False
    _print(f"Database ready at {path}")
    return True


def open_browser() -> None:
    """Wait for the web server to be ready, then open the API docs."""
    for _ in range(30):
        try:
            req = urllib.request.Request(DOCS_URL, method="GET")
            with urllib.request.urlopen(req, timeout=2) as resp:
                if resp.status == 200:
                    _print(f"Opening browser at {DOCS_URL}")
                    webbrowser.open(DOCS_URL)
                    return
        except (urllib.error.URLError, ConnectionError, OSError):
            pass
        time.sleep(1)
    _print("WARNING: Could not verify server is running. Open manually: " + DOCS_URL)


def launch_app() -> None:
    """Launch the FastAPI application via uvicorn (blocks until stopped)."""
    from fossinvoice.web.app import main as serve

    _print(f"Launching FOSSInvoice at {APP_URL} ...")
    threading.Thread(target=open_browser, daemon=True).start()
    serve()


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    _print("=" * 50)
    _print("FOSSInvoice - Launcher")
    _print("=" * 50)

    _print("Checking Python dependencies...")
    if not check_python_deps():
        return 1
    _print("Python dependencies OK.")

    if not prepare_database(argv[0] if argv else None):
        return 1

    launch_app()
    return 0


if __name__ == "__main__":
    sys.exit(main())
