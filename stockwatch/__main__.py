"""Run the stockwatch webhook service: python -m stockwatch."""

from __future__ import annotations

import os

import uvicorn

from stockwatch.app import create_app


def main() -> None:
    uvicorn.run(
        create_app(),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8080")),
    )


if __name__ == "__main__":
    main()
