# backend/pdv/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pdv.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pdv.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "token:user_id:ROLE;token:user_id:ROLE"
    API_TOKENS = os.environ.get("PDV_API_TOKENS", "")

    SALE_CODE_PREFIX = os.environ.get("PDV_SALE_CODE_PREFIX", "EDL")
    SALE_CODE_MAX_ATTEMPTS = int(os.environ.get("PDV_SALE_CODE_MAX_ATTEMPTS", "5"))

    # Wall-clock budget for one write unit of work (lock wait / statement time)
    UNIT_OF_WORK_TIMEOUT_SECONDS = float(os.environ.get("PDV_UOW_TIMEOUT_SECONDS", "10"))
    UNIT_OF_WORK_RETRY_ATTEMPTS = int(os.environ.get("PDV_UOW_RETRY_ATTEMPTS", "3"))
    UNIT_OF_WORK_RETRY_BACKOFF_SECONDS = float(os.environ.get("PDV_UOW_RETRY_BACKOFF_SECONDS", "0.05"))

    REPORT_TOP_N = 10
    REPORT_TOP_N_MAX = 100
    RECENT_SALES_DEFAULT = 20
    RECENT_SALES_MAX = 100

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
