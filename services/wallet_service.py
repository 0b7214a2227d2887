# ==================================================
# 👛 WALLET SERVICE
# Token balance lookups + transaction fee estimate
# Own public endpoint pool, 3 attempts, 1s between
# ==================================================

import base64
import struct
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from loguru import logger
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from nodes.config import BURN_ADDRESS, NODE_CONFIG, TOKEN_DECIMALS, TOKEN_MINT
from nodes.pool import EndpointPool
from nodes.rpc import RPCError, RPCRetryError, SolanaRPC, retry_with_rotation
from utils.solana_address import get_associated_token_address

SERVICE_RETRIES = 3
SERVICE_RETRY_SLEEP = 1.0

RETRY_ON = (RPCError, KeyError, TypeError, ValueError, IndexError, struct.error)

LAMPORTS_PER_SOL_EXP = 9

# SPL token account layout: mint(32) | owner(32) | amount(u64 LE)
TOKEN_AMOUNT_OFFSET = 64

# ============================================
# RPC Bind
# ============================================

POOL = EndpointPool(NODE_CONFIG["public"]["endpoints"], name="wallet")
RPC = SolanaRPC(POOL, timeout=NODE_CONFIG["public"]["timeout"])


@dataclass
class WalletBalance:
    success: bool
    balance: Decimal = Decimal(0)
    method: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "balance": self.balance, "method": self.method}


@dataclass
class FeeEstimate:
    success: bool
    fee: Optional[Decimal] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "fee": self.fee}


def raw_token_amount(account_data_b64: str, decimals: int = TOKEN_DECIMALS) -> Decimal:
    data = base64.b64decode(account_data_b64)
    (amount,) = struct.unpack_from("<Q", data, TOKEN_AMOUNT_OFFSET)
    return Decimal(amount).scaleb(-decimals)


def _parsed_balance(rpc: SolanaRPC, wallet_address: str) -> WalletBalance:
    accounts = rpc.get_token_accounts_by_owner(wallet_address, TOKEN_MINT, retries=1)
    if not accounts:
        return WalletBalance(success=True, balance=Decimal(0), method="parsed")

    ui_amount = accounts[0]["account"]["data"]["parsed"]["info"]["tokenAmount"]["uiAmount"]
    return WalletBalance(success=True, balance=Decimal(str(ui_amount or 0)), method="parsed")


def _raw_balance(rpc: SolanaRPC, wallet_address: str) -> WalletBalance:
    token_account = get_associated_token_address(wallet_address, TOKEN_MINT)
    info = rpc.get_account_info(token_account, encoding="base64", retries=1)
    if not info:
        return WalletBalance(success=True, balance=Decimal(0), method="raw")

    return WalletBalance(success=True, balance=raw_token_amount(info["data"][0]), method="raw")


def get_wallet_balance(wallet_address: str, retries: int = SERVICE_RETRIES,
                       rpc: Optional[SolanaRPC] = None, delay: float = SERVICE_RETRY_SLEEP) -> WalletBalance:
    rpc = rpc or RPC

    def attempt() -> WalletBalance:
        try:
            return _parsed_balance(rpc, wallet_address)
        except RETRY_ON as e:
            logger.info(f"[WALLET] Parsed method failed ({e}), trying raw method...")
            return _raw_balance(rpc, wallet_address)

    try:
        return retry_with_rotation(rpc.pool, attempt, retries=retries, delay=delay,
                                   label="get_wallet_balance", retry_on=RETRY_ON)
    except RPCRetryError as e:
        return WalletBalance(success=False, error=str(e.last_error or e))


def fee_probe_message(blockhash: str) -> str:
    payer = Pubkey.from_string(BURN_ADDRESS)
    ix = transfer(TransferParams(from_pubkey=payer, to_pubkey=payer, lamports=0))
    message = Message.new_with_blockhash([ix], payer, Hash.from_string(blockhash))
    return base64.b64encode(bytes(message)).decode("ascii")


def estimate_transaction_fee(retries: int = SERVICE_RETRIES, rpc: Optional[SolanaRPC] = None,
                             delay: float = SERVICE_RETRY_SLEEP) -> FeeEstimate:
    rpc = rpc or RPC

    def attempt() -> FeeEstimate:
        blockhash = rpc.get_latest_blockhash(retries=1)
        lamports = rpc.get_fee_for_message(fee_probe_message(blockhash), retries=1)
        if lamports is None:
            raise RPCError("fee unavailable for probe message")
        return FeeEstimate(success=True, fee=Decimal(lamports).scaleb(-LAMPORTS_PER_SOL_EXP))

    try:
        return retry_with_rotation(rpc.pool, attempt, retries=retries, delay=delay,
                                   label="estimate_transaction_fee", retry_on=RETRY_ON)
    except RPCRetryError as e:
        return FeeEstimate(success=False, error=str(e.last_error or e))
