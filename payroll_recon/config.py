"""Configuration management using Pydantic Settings"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Matching
    match_tolerance: int = 5  # currency units
    max_subset_candidates: int = 28  # 2^28 subsets is the interactive ceiling
    max_alternatives: int = 5

    # Rule synthesis
    generated_rule_weight: int = 10
    generated_rule_priority: int = 1

    # Chart of accounts
    payroll_account_prefixes: List[str] = ["5"]
    accrual_account_prefixes: List[str] = ["294", "295"]
    default_accrual_code: str = "feriepenger"

    # Service
    service_name: str = "payroll-recon"
    log_level: str = "INFO"


settings = Settings()
