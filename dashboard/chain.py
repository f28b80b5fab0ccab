# dashboard/chain.py
"""
The dashboard's only contact with the blockchain: reading an organization's
issuance fee and paying it. Everything else in the dashboard talks to the
PaymentGateway interface, never to web3 objects directly.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import requests
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

logger = logging.getLogger(__name__)

# Only the registry getter the dashboard needs. Point CONTRACT_ABI_PATH at the
# full compiled ABI when the deployed struct has more fields.
ORGANIZATIONS_ABI = [
    {
        "name": "organizations",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [
            {"name": "isRegistered", "type": "bool"},
            {"name": "issuanceFee", "type": "uint256"},
        ],
    }
]

PLAIN_TRANSFER_GAS = 21000


class ChainError(Exception):
    """A blockchain read or write that could not be completed."""


class OrganizationNotRegistered(ChainError):
    pass


class TransferFailed(ChainError):
    pass


@dataclass(frozen=True)
class TransferReceipt:
    tx_hash: str
    amount: int
    block_number: Optional[int] = None


class PaymentGateway:
    """Capability interface used by the request flow."""

    sender_address: Optional[str] = None

    def is_ready(self) -> bool:
        """True once a wallet is connected and the registry contract is resolved."""
        raise NotImplementedError

    def get_issuance_fee(self, org_address: str) -> int:
        """Returns the organization's fee in wei; raises OrganizationNotRegistered."""
        raise NotImplementedError

    def transfer(self, to_address: str, amount: int) -> TransferReceipt:
        """Sends `amount` wei and blocks until the transaction is mined."""
        raise NotImplementedError


def load_abi(path: Optional[str]) -> Sequence[Dict[str, Any]]:
    if not path:
        return ORGANIZATIONS_ABI
    with open(path, "r") as f:
        data = json.load(f)
    # Hardhat/Truffle artifacts wrap the ABI; plain ABI files are a list.
    return data["abi"] if isinstance(data, dict) else data


def _named_outputs(contract, fn_name: str, result) -> Dict[str, Any]:
    fn_abi = next(item for item in contract.abi if item.get("type") == "function" and item.get("name") == fn_name)
    names = [output.get("name") for output in fn_abi.get("outputs", [])]
    values = result if isinstance(result, (list, tuple)) else (result,)
    return dict(zip(names, values))


def _checksum(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (TypeError, ValueError) as e:
        raise ChainError(f"Invalid wallet address: {address}") from e


class Web3PaymentGateway(PaymentGateway):
    def __init__(self, w3: Web3, contract=None, account=None, receipt_timeout: int = 180):
        self.w3 = w3
        self.contract = contract
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.sender_address = account.address if account is not None else None

    @classmethod
    def from_config(cls, config) -> "Web3PaymentGateway":
        w3 = Web3(Web3.HTTPProvider(config.RPC_URL, request_kwargs={"timeout": 30}))
        contract = None
        if config.CONTRACT_ADDRESS:
            contract = w3.eth.contract(address=_checksum(config.CONTRACT_ADDRESS),
                                       abi=load_abi(config.CONTRACT_ABI_PATH))
        else:
            logger.warning("CONTRACT_ADDRESS is not set; issuance fees cannot be read.")
        account = w3.eth.account.from_key(config.WALLET_PRIVATE_KEY) if config.WALLET_PRIVATE_KEY else None
        return cls(w3, contract=contract, account=account, receipt_timeout=config.TRANSFER_TIMEOUT)

    def is_ready(self) -> bool:
        return self.account is not None and self.contract is not None

    def get_issuance_fee(self, org_address: str) -> int:
        if self.contract is None:
            raise ChainError("Blockchain contract not loaded.")
        try:
            result = self.contract.functions.organizations(_checksum(org_address)).call()
        except (Web3Exception, requests.exceptions.RequestException) as e:
            logger.error(f"Reading issuance fee for {org_address} failed: {e}")
            raise ChainError(f"Failed to fetch fee: {e}") from e

        details = _named_outputs(self.contract, "organizations", result)
        if not details.get("isRegistered"):
            raise OrganizationNotRegistered("Selected organization not found on blockchain or not registered.")
        return int(details.get("issuanceFee", 0))

    def transfer(self, to_address: str, amount: int) -> TransferReceipt:
        if self.account is None:
            raise ChainError("No wallet connected.")
        try:
            tx = {
                "to": _checksum(to_address),
                "value": amount,
                "nonce": self.w3.eth.get_transaction_count(self.account.address),
                "gas": PLAIN_TRANSFER_GAS,
                "gasPrice": self.w3.eth.gas_price,
                "chainId": self.w3.eth.chain_id,
            }
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info(f"Sent {amount} wei to {to_address}: {Web3.to_hex(tx_hash)}")
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            raise TransferFailed("Payment was not confirmed in time.") from e
        except (Web3Exception, ValueError, requests.exceptions.RequestException) as e:
            raise TransferFailed(str(e)) from e

        if receipt.get("status") != 1:
            raise TransferFailed("Payment transaction reverted.")
        return TransferReceipt(tx_hash=Web3.to_hex(tx_hash), amount=amount, block_number=receipt.get("blockNumber"))


def format_fee(amount_wei: int) -> str:
    """Wei to a plain decimal ether string, e.g. 10**17 -> '0.1'."""
    value = Web3.from_wei(int(amount_wei), "ether")
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
