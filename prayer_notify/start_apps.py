"""
Local launcher for the API, the Celery worker and Celery beat.

Beat owns the daily prayer notification sweep, so all three must be running
for alerts to be queued without a manual trigger.
"""

import multiprocessing
import signal
import subprocess
import sys
import time
from pathlib import Path

import redis

from prayer_notify.config.settings import settings
from prayer_notify.utils.logging import get_logger

logger = get_logger()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

SERVICES = {
    "API": [
        "uvicorn",
        "prayer_notify.main:app",
        "--host",
        "0.0.0.0",
        "--port",
        "8000",
    ],
    "Worker": ["celery", "-A", "prayer_notify.celery", "worker", "--loglevel=info"],
    "Beat": ["celery", "-A", "prayer_notify.celery", "beat", "--loglevel=info"],
}


def setup_signal_handlers():
    """Turn SIGTERM into KeyboardInterrupt so shutdown runs the same path"""

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating shutdown...")
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def run_service(name: str):
    try:
        logger.info(f"Starting {name} process")
        subprocess.run(
            [sys.executable, "-m", *SERVICES[name]],
            check=True,
            cwd=str(PROJECT_ROOT),
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"{name} process failed with return code {e.returncode}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info(f"{name} process interrupted by user")


def check_redis_connection() -> bool:
    """The Celery broker must be reachable before worker and beat start"""
    try:
        redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
            socket_connect_timeout=5,
        ).ping()
    except redis.RedisError as e:
        logger.error(f"Redis connection failed: {e}")
        return False

    logger.info("Redis connection successful")
    return True


def terminate_processes(processes):
    logger.info("Stopping all services")

    for process in processes:
        if process.is_alive():
            process.terminate()

    for process in processes:
        process.join(timeout=10)
        if process.is_alive():
            logger.warning(f"{process.name} did not stop in time, killing it")
            process.kill()
            process.join()


def main():
    multiprocessing.freeze_support()
    setup_signal_handlers()

    logger.info(f"Starting {settings.NAME} (API + Celery worker + Celery beat)")

    if not check_redis_connection():
        logger.error("Cannot start services without Redis connection")
        sys.exit(1)

    processes = []
    try:
        for name in SERVICES:
            process = multiprocessing.Process(target=run_service, args=(name,), name=name)
            process.start()
            processes.append(process)

        # Any service dying takes the others down with it
        while all(process.is_alive() for process in processes):
            time.sleep(1)

        dead = [p.name for p in processes if not p.is_alive()]
        logger.error(f"Service stopped unexpectedly: {', '.join(dead)}")
    except KeyboardInterrupt:
        logger.info("Shutdown signal received")
    finally:
        terminate_processes(processes)


if __name__ == "__main__":
    main()
