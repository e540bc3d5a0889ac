"""
Server entrypoint for PhotoMagic.

Interface responsibilities:
- Configure process-wide logging from `LOG_LEVEL`.
- Build the HTTP app (fails fast when the API key is missing).
- Serve it with uvicorn on `HOST`/`PORT`.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os

import uvicorn

from photomagic.api.http_api import create_app


def main():
    level = getattr(logging, (os.getenv("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app()
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
