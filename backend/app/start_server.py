"""
Windows-compatible startup script for the action engine backend
This MUST be run instead of 'uvicorn main:app' on Windows
"""

import sys
import os
import asyncio

# Force unbuffered output
os.environ['PYTHONUNBUFFERED'] = '1'

# CRITICAL: Set Windows event loop policy FIRST, before any imports
if sys.platform == 'win32':
    print(" Detected Windows - Setting ProactorEventLoop policy...", flush=True)
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
    print(" Event loop policy set successfully", flush=True)


def main():
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    print("\n Starting Action Engine Server...", flush=True)
    print(f" Server will run on: http://localhost:{port}", flush=True)
    print(f" API Docs available at: http://localhost:{port}/docs", flush=True)
    print("\n" + "="*50, flush=True)

    # reload=False keeps logs in this terminal
    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=False,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
