import asyncio
import logging
import coloredlogs
from hypercorn.asyncio import serve
from hypercorn.config import Config

from app import app
from configs import HOST, PORT
from Modules.log_format import LOG_LEVEL, LOG_FORMAT, FIELD_STYLE

logger = logging.getLogger('rpgm_asset_cipher')
coloredlogs.install(level=LOG_LEVEL, logger=logger, fmt=LOG_FORMAT, field_styles=FIELD_STYLE)


async def run() -> None:
    config = Config()
    config.bind = [f'{HOST}:{PORT}']
    logger.info(f'Asset cipher service listening on {HOST}:{PORT}')
    await serve(app, config)


if __name__ == '__main__':
    asyncio.run(run())
