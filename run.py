"""Desktop entry point: starts the ZipLens Streamlit app and opens the browser."""

import sys
import threading
import time
import webbrowser
from pathlib import Path

import requests


PORT = 8501
URL = f"http://localhost:{PORT}"


def wait_for_server(url: str = URL, attempts: int = 30, delay: float = 1.0) -> bool:
    """Poll *url* until it answers 200. Returns False if it never does."""
    for _ in range(attempts):
        try:
            resp = requests.get(url, timeout=2)
            if resp.status_code == 200:
                return True
        except requests.RequestException:
            pass
        time.sleep(delay)
    return False


def _open_browser_when_ready() -> None:
    if wait_for_server():
        webbrowser.open(URL)


def _app_path() -> Path:
    # PyInstaller bundles unpack to _MEIPASS
    base = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parent))
    return base / "src" / "ZipLens" / "app.py"


def main() -> None:
    src_dir = _app_path().parent.parent
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))

    # In a frozen bundle streamlit wrongly detects developmentMode=True and
    # rejects server.port unless the flag is forced before bootstrap.
    from streamlit import config as _stconfig

    _stconfig.get_config_options(
        force_reparse=True,
        options_from_flags={"global.developmentMode": False},
    )

    from streamlit.web import bootstrap

    threading.Thread(target=_open_browser_when_ready, daemon=True).start()

    bootstrap.run(
        str(_app_path()),
        is_hello=False,
        args=[],
        flag_options={
            "global.developmentMode": False,
            "server.headless": True,
            "server.port": PORT,
            "browser.gatherUsageStats": False,
        },
    )


if __name__ == "__main__":
    main()
