"""
Startup script for the Browsy backend.
On Windows this MUST be used instead of 'uvicorn main:app'.
"""

import sys
import os
import asyncio
import logging

# Force unbuffered output
os.environ['PYTHONUNBUFFERED'] = '1'

# CRITICAL: Set Windows event loop policy FIRST, before any imports
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())


def main():
    import uvicorn
    from config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger = logging.getLogger("start_server")

    logger.info(f"Starting Browsy server on http://localhost:{settings.port}")
    logger.info(f"API Docs available at: http://localhost:{settings.port}/docs")
    logger.info(f"Sessions file: {settings.sessions_path}")

    # reload=False keeps logs in this terminal
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
