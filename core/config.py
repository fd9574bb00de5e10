import os
from dotenv import load_dotenv

load_dotenv()


def get_api_base_url() -> str:
    """Base URL of the dashboard data service"""
    return os.getenv("HCP_API_BASE_URL", "http://localhost:5000").rstrip("/")


def get_api_timeout() -> float:
    return float(os.getenv("HCP_API_TIMEOUT", "15"))


def get_api_max_workers() -> int:
    return int(os.getenv("HCP_API_MAX_WORKERS", "4"))


def get_target_product() -> str:
    """Index product whose retention the timeline tracks"""
    return os.getenv("TARGET_PRODUCT", "Onco-Pro")


def get_session_retention_days() -> int:
    return int(os.getenv("SESSION_RETENTION_DAYS", "30"))


def get_activity_stage_seconds() -> float:
    """Wall-clock length of one stage's activity reveal"""
    return float(os.getenv("ACTIVITY_STAGE_SECONDS", "12"))
