import base58
from solders.pubkey import Pubkey

from nodes.config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BURN_ADDRESS,
    BURN_TOKEN_ACCOUNT,
    TOKEN_MINT,
    TOKEN_PROGRAM_ID,
)


# --------------------------------------------------
# Base58 → 32-byte public key check
# --------------------------------------------------
def is_valid_solana_address(address) -> bool:

    if not isinstance(address, str) or not address:
        return False

    try:
        decoded = base58.b58decode(address)
    except ValueError:
        return False

    return len(decoded) == 32


# --------------------------------------------------
# Owner + Mint → Associated Token Account (PDA)
# --------------------------------------------------
def get_associated_token_address(
    owner: str,
    mint: str,
    token_program_id: str = TOKEN_PROGRAM_ID,
) -> str:

    owner_key = Pubkey.from_string(owner)
    mint_key = Pubkey.from_string(mint)
    program_key = Pubkey.from_string(token_program_id)

    address, _bump = Pubkey.find_program_address(
        [bytes(owner_key), bytes(program_key), bytes(mint_key)],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return str(address)


# --------------------------------------------------
# Incinerator token account for the tracked mint
# --------------------------------------------------
def burn_token_account() -> str:

    if BURN_TOKEN_ACCOUNT:
        return BURN_TOKEN_ACCOUNT

    return get_associated_token_address(BURN_ADDRESS, TOKEN_MINT)
