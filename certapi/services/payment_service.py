# services/payment_service.py
"""
Checks that a student's issuance fee transfer actually happened on-chain.
"""
from typing import Optional, Tuple
from flask import current_app
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception
import requests


class PaymentUnavailable(Exception):
    """Raised when the chain node cannot be reached to check a payment."""


def _get_web3() -> Web3:
    return Web3(Web3.HTTPProvider(current_app.config['CHAIN_RPC_URL'], request_kwargs={'timeout': 15}))


def _same_address(left: Optional[str], right: Optional[str]) -> bool:
    return bool(left) and bool(right) and left.lower() == right.lower()


def verify_payment(tx_hash: str, sender: str, recipient: str, amount: int) -> Tuple[bool, str]:
    """
    Returns (ok, reason). The transfer must be mined successfully, go from
    `sender` to `recipient`, and carry exactly `amount` wei.
    """
    w3 = _get_web3()
    try:
        tx = w3.eth.get_transaction(tx_hash)
        receipt = w3.eth.get_transaction_receipt(tx_hash)
    except TransactionNotFound:
        return False, "Payment transaction not found or not yet mined."
    except ValueError as e:
        return False, f"Invalid payment transaction hash: {e}"
    except (Web3Exception, requests.exceptions.RequestException) as e:
        current_app.logger.error(f"Could not reach chain node to verify payment {tx_hash}: {e}")
        raise PaymentUnavailable(str(e)) from e

    if receipt.get('status') != 1:
        return False, "Payment transaction failed on-chain."
    if not _same_address(tx.get('from'), sender):
        return False, "Payment was not sent from the requesting student's wallet."
    if not _same_address(tx.get('to'), recipient):
        return False, "Payment was not sent to the organization's wallet."
    if int(tx.get('value', 0)) != amount:
        return False, "Payment amount does not match the issuance amount."
    return True, "Payment verified."
