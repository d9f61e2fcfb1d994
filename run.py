"""TYPEBOARD - Simple launcher."""
import os
import threading
import webbrowser

from typeboard.main import STATIC_DIR, main


def landing_url(port: int = 3000) -> str:
    """The game page when a static build ships, the API docs otherwise."""
    if os.path.exists(STATIC_DIR):
        return f"http://localhost:{port}/game/"
    return f"http://localhost:{port}/docs"


def _open_browser():
    """Open the landing page after a short delay to allow server startup."""
    import time
    time.sleep(1.5)
    webbrowser.open(landing_url(int(os.environ.get("PORT", "3000"))))


if __name__ == "__main__":
    threading.Thread(target=_open_browser, daemon=True).start()
    main()
