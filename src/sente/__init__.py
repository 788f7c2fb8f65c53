__all__ = [
    # Errors
    "SenteError",
    "ConfigurationError",
    "EndpointError",
    "AccountNotFound",
    "BuildError",
    "InvalidTimeout",
    "InvalidFee",
    "SimulationError",
    "SignerError",
    "SignerFailure",
    "SubmissionError",
    "SubmissionFailure",
    "PollTimeout",
    "CodecError",
    "CodecFailure",
    "SessionError",
    # Config
    "NetworkConfig",
    "PipelineSettings",
    "get_network",
    # Codec
    "ContractValue",
    "ScType",
    "encode",
    "decode",
    # Models
    "AccountSnapshot",
    "ContractCall",
    "Payment",
    "UnsignedTransaction",
    "SignedTransaction",
    "SubmissionHandle",
    "TransactionOutcome",
    "OutcomeStatus",
    "TxStatus",
    # Pipeline stages
    "build_transaction",
    "simulate",
    "assemble",
    "FinalityPoller",
    "EndpointClient",
    "InvocationPipeline",
    # Wallet
    "KeypairSigner",
    "BridgeSigner",
    "SignerGateway",
    "WalletSession",
    "SessionState",
    # Registry & facades
    "ContractRegistry",
    "DeploymentRecord",
    "SenteToken",
    "SenteVault",
    # Amount formatting
    "format_amount",
    "parse_amount",
]

from .config import NetworkConfig, PipelineSettings, get_network
from .contracts import SenteToken, SenteVault
from .errors import (
    AccountNotFound,
    BuildError,
    CodecError,
    CodecFailure,
    ConfigurationError,
    EndpointError,
    InvalidFee,
    InvalidTimeout,
    PollTimeout,
    SenteError,
    SessionError,
    SignerError,
    SignerFailure,
    SimulationError,
    SubmissionError,
    SubmissionFailure,
)
from .ledger.builder import build_transaction
from .ledger.codec import ContractValue, ScType, decode, encode
from .ledger.models import (
    AccountSnapshot,
    ContractCall,
    OutcomeStatus,
    Payment,
    SignedTransaction,
    SubmissionHandle,
    TransactionOutcome,
    TxStatus,
    UnsignedTransaction,
)
from .ledger.pipeline import InvocationPipeline
from .ledger.poller import FinalityPoller
from .ledger.rpc import EndpointClient
from .ledger.simulate import assemble, simulate
from .registry import ContractRegistry, DeploymentRecord
from .utils import format_amount, parse_amount
from .wallet.session import SessionState, WalletSession
from .wallet.signer import BridgeSigner, KeypairSigner, SignerGateway
