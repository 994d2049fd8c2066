import uvicorn

from ytmux.config.settings import config


def main() -> None:
    uvicorn.run(
        "ytmux.main:app",
        host=config.api.host,
        port=config.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
