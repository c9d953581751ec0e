from __future__ import annotations

import os
from pathlib import Path
import sys

import uvicorn


def main() -> None:
    sys.path.insert(0, str(Path(__file__).resolve().parent))
    port = int(os.environ.get("PORT") or "8080")
    uvicorn.run("look_replicator.main:app", host="0.0.0.0", port=port, log_level=(os.getenv("LOG_LEVEL") or "info").lower())


if __name__ == "__main__":
    main()
