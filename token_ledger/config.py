"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class TokenLedgerConfig(BaseSettings):
    """Token ledger and staking relay configuration"""

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Accounts
    contract_account: str = "menteentwk"  # The ledger contract; also its controller
    governance_account: str = "menteectr"  # External governance contract
    staking_account: str = "menteectr"  # Receives relay stakes

    # Staking relay constants
    stake_symbol_code: str = "MNT"
    stake_symbol_precision: int = 3
    precision_multiplier: int = 1000  # Minor units per whole MNT
    propose_stake: int = 35  # Whole MNT staked per proposal
    stake_memo: str = "stake for vote"
    governance_propose_action: str = "propose2"
    governance_vote_action: str = "vote"

    # Ledger rules
    max_memo_bytes: int = 256
    max_inline_depth: int = 4

    # Storage configuration
    storage_url: str = "memory://"  # memory:// or sqlite:///path/to.db

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Feature flags
    enable_audit_logging: bool = True


# Global configuration instance
config = TokenLedgerConfig()


def get_config() -> TokenLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TokenLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = TokenLedgerConfig()
    return config
