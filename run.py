#!/usr/bin/env python3
# run.py
"""
Development server runner.

Messages live in memory only: restarting the server empties the board.
"""
import os

import uvicorn

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    print(f"Starting message board at http://localhost:{port}")
    print(f"API Docs: http://localhost:{port}/docs")

    uvicorn.run("msgboard.main:app", host=host, port=port, reload=True, log_level="info")
