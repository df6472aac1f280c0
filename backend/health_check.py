#!/usr/bin/env python3
"""
Docker health check script for the Multiplier API.
"""
import sys

import requests

from multiplier_api.config import get_settings
from multiplier_api.crud import RecordStore
from multiplier_api.dependencies import get_database_client
from multiplier_api.logger import get_logger
from multiplier_api.models import PRESET

logger = get_logger("health_check")
settings = get_settings()


def check_api_health(base_url: str = "http://localhost:8000") -> bool:
    """Check if the API is responding."""
    try:
        response = requests.get(f"{base_url}/health", timeout=10)
        if response.status_code == 200:
            return response.json().get("status") == "healthy"
        return False
    except requests.RequestException as e:
        logger.error(f"API health check failed: {e}")
        return False


def check_database() -> bool:
    """Check that the preset table can be read."""
    try:
        store = RecordStore(get_database_client(), table_prefix=settings.table_prefix)
        store.list_for_user(PRESET, 0)
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def main():
    """Run all health checks."""
    checks = [
        ("API Server", check_api_health),
        ("Database", check_database),
    ]

    all_healthy = True
    for name, check_func in checks:
        result = check_func()
        print(f"{name:<20} {'HEALTHY' if result else 'UNHEALTHY'}")
        if not result:
            all_healthy = False

    sys.exit(0 if all_healthy else 1)


if __name__ == "__main__":
    main()
