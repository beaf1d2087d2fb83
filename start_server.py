#!/usr/bin/env python3
"""
Development launcher: uvicorn with auto-reload on $PORT (default 3001).
"""

import subprocess
import sys
import os
from pathlib import Path
from taskmate.config import PORT
from taskmate.utils.logger import logger

def main():
    logger.info(f"Starting TaskMate API on port {PORT} (auto-reload on)")

    project_dir = Path(__file__).parent
    os.chdir(project_dir)

    env = os.environ.copy()
    env['PYTHONPATH'] = str(project_dir) + os.pathsep + env.get('PYTHONPATH', '')

    cmd = [
        sys.executable, "-m", "uvicorn",
        "taskmate.main:app",
        "--host", "0.0.0.0",
        "--port", str(PORT),
        "--reload",
        "--reload-dir", str(project_dir / "taskmate")
    ]

    try:
        subprocess.run(cmd, check=True, env=env)
    except subprocess.CalledProcessError as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Server stopped")
        sys.exit(0)

if __name__ == "__main__":
    main()
