"""Core types: results, exit codes and configuration."""

from .config import ConfigError, Credentials, PipelineConfig, load_config, load_credentials
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "Credentials",
    "PipelineConfig",
    "load_config",
    "load_credentials",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
