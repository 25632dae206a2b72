"""
Smart Wallet Off-chain Library

Transaction construction and validation for Coinbase Smart Wallet accounts.
Prepares unsigned transactions; signing and broadcasting are left to
external collaborators.
"""

from .chain_context import EVMChainContext
from .classifier import classify_call
from .discovery import AccountDiscovery, RecoveryRegistryClient, select_primary
from .errors import SmartWalletError
from .events import LoggingEventSink, RecordingEventSink
from .models import PipelineConfig, PipelineContext, PreparedTransaction, TransactionPlan
from .pipeline import SmartWalletPipeline, submit_prepared
from .tokens import TokenOperations
from .wallet import SmartWalletAccount


__all__ = [
    "EVMChainContext",
    "SmartWalletPipeline",
    "SmartWalletAccount",
    "AccountDiscovery",
    "RecoveryRegistryClient",
    "TokenOperations",
    "SmartWalletError",
    "LoggingEventSink",
    "RecordingEventSink",
    "PipelineConfig",
    "PipelineContext",
    "PreparedTransaction",
    "TransactionPlan",
    "classify_call",
    "select_primary",
    "submit_prepared",
]
