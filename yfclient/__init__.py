"""Resilient async client core for the Yahoo Finance web API."""

from yfclient.config import FinanceSettings
from yfclient.errors import (
    FinanceError,
    HttpError,
    InvalidModulesError,
    NetworkError,
    ParseError,
    TransportError,
    UnknownEndpointError,
)
from yfclient.finance import BaseFinance
from yfclient.logging_config import configure_logging
from yfclient.proxy import ProxyDescriptor, ProxyPool
from yfclient.resilience import BackoffPolicy, RetryPolicy, run_with_retry
from yfclient.session import SessionManager, create_session

__version__ = "0.1.0"

__all__ = [
    "BackoffPolicy",
    "BaseFinance",
    "FinanceError",
    "FinanceSettings",
    "HttpError",
    "InvalidModulesError",
    "NetworkError",
    "ParseError",
    "ProxyDescriptor",
    "ProxyPool",
    "RetryPolicy",
    "SessionManager",
    "TransportError",
    "UnknownEndpointError",
    "configure_logging",
    "create_session",
    "run_with_retry",
]
