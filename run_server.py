# run_server.py
import os, sys, traceback, faulthandler
from pathlib import Path

# crash log lives next to the exe (or this file when run from source)
BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
LOG_FILE = BASE_DIR / "ledger_crash.log"

HOST = os.getenv("LEDGER_HOST", "0.0.0.0")
PORT = int(os.getenv("LEDGER_PORT", "5001"))

faulthandler.enable(open(LOG_FILE, "a", encoding="utf-8"))


def log(msg: str):
    with open(LOG_FILE, "a", encoding="utf-8") as f:
        f.write(msg + "\n")


def main():
    try:
        log("\n--- START ---")
        log(f"exe={sys.executable}")
        log(f"cwd={os.getcwd()}")
        log(f"base_dir={BASE_DIR}")
        log(f"listen={HOST}:{PORT}")

        import uvicorn

        # app import after the crash log is ready
        from main import app

        uvicorn.run(app, host=HOST, port=PORT, reload=False, log_level="info")

    except Exception:
        err = traceback.format_exc()
        log(err)
        print(err)
        if getattr(sys, "frozen", False):
            input("\nPress Enter to exit...")
        sys.exit(1)


if __name__ == "__main__":
    main()
