"""Request construction and response reshaping."""

from yfclient.finance.base import CHUNK_SIZE, BaseFinance
from yfclient.finance.normalizer import format_all, format_data

__all__ = ["CHUNK_SIZE", "BaseFinance", "format_all", "format_data"]
