"""
Module entry point: python -m sharptools
"""
import logging

import uvicorn

from . import config


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run("sharptools.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
