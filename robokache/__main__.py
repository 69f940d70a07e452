"""Run the API with uvicorn: ``python -m robokache``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "robokache.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8080")),
        log_config=None,  # logging is configured by robokache.core.logging_config
    )


if __name__ == "__main__":
    main()
