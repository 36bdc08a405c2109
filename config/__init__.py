"""Configuration module for the FunPay client.

This module provides centralized configuration management using pydantic-settings,
loading account credentials and network settings from the environment.
"""

from config.settings import GlobalConfig, get_config

__all__ = ["GlobalConfig", "get_config"]
