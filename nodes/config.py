# ==================================================
# ⚙️ NODE / RPC CONFIG
# Environment-driven settings for the burn tracker
# ==================================================

import os


def _env_list(name, default):
    raw = os.getenv(name, "")
    items = [x.strip() for x in raw.split(",") if x.strip()]
    return items or list(default)


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


def _env_float(name, default):
    return float(os.getenv(name, str(default)))


# ----------------------------
# Token / burn destination
# ----------------------------
TOKEN_MINT = os.getenv("TOKEN_MINT", "3RNx8fsFmumKhypgL8KdiGvvopBkiaWNNMg4zNPLpump")
BURN_ADDRESS = os.getenv("BURN_ADDRESS", "1nc1nerator11111111111111111111111111111111")

# pump.fun mints live under Token-2022
TOKEN_PROGRAM_ID = os.getenv("TOKEN_PROGRAM_ID", "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Leave empty to derive the incinerator's associated token account
BURN_TOKEN_ACCOUNT = os.getenv("BURN_TOKEN_ACCOUNT", "")

TOKEN_DECIMALS = _env_int("TOKEN_DECIMALS", 6)
INITIAL_SUPPLY = _env_int("INITIAL_SUPPLY", 1_000_000_000)

# ----------------------------
# RPC endpoints
# ----------------------------
PUBLIC_RPC_ENDPOINTS = _env_list("PUBLIC_RPC_ENDPOINTS", [
    "https://api.mainnet-beta.solana.com",
    "https://rpc.ankr.com/solana",
    "https://solana-api.projectserum.com",
    "https://solana.public-rpc.com",
])

# No fallback key: without HELIUS_API_KEY ingestion runs on the public pool
HELIUS_API_KEY = os.getenv("HELIUS_API_KEY", "")


def burn_rpc_endpoints():
    override = _env_list("BURN_RPC_ENDPOINTS", [])
    if override:
        return override
    if HELIUS_API_KEY:
        return [f"https://mainnet.helius-rpc.com/?api-key={HELIUS_API_KEY}"] + PUBLIC_RPC_ENDPOINTS
    return list(PUBLIC_RPC_ENDPOINTS)


RPC_TIMEOUT_SEC = _env_float("RPC_TIMEOUT_SEC", 15.0)
RPC_RETRIES = _env_int("RPC_RETRIES", 3)
RPC_RETRY_SLEEP = _env_float("RPC_RETRY_SLEEP", 1.0)

NODE_CONFIG = {
    "burns": {
        "endpoints": burn_rpc_endpoints(),
        "timeout": RPC_TIMEOUT_SEC,
        "commitment": "confirmed",
    },
    "public": {
        "endpoints": list(PUBLIC_RPC_ENDPOINTS),
        "timeout": RPC_TIMEOUT_SEC,
        "commitment": "confirmed",
    },
}

# ----------------------------
# Ingestion tuning
# ----------------------------
BACKFILL_LIMIT = _env_int("BACKFILL_LIMIT", 100)
BURN_LEDGER_MAX_EVENTS = _env_int("BURN_LEDGER_MAX_EVENTS", 50_000)

MONITOR_MAX_RECONNECTS = _env_int("MONITOR_MAX_RECONNECTS", 8)
MONITOR_BACKOFF_BASE_SEC = _env_float("MONITOR_BACKOFF_BASE_SEC", 1.0)
MONITOR_BACKOFF_MAX_SEC = _env_float("MONITOR_BACKOFF_MAX_SEC", 60.0)

# ----------------------------
# Notifications
# ----------------------------
NOTIFY_QUEUE_SIZE = _env_int("NOTIFY_QUEUE_SIZE", 1000)
REDIS_URL = os.getenv("REDIS_URL", "")
BURN_WEBHOOK_URL = os.getenv("BURN_WEBHOOK_URL", "")

# ----------------------------
# HTTP API
# ----------------------------
PORT = _env_int("PORT", 3001)
CORS_ORIGINS = _env_list("CORS_ORIGINS", [
    "http://localhost:3000",
    "https://omegazoid.xyz",
    "https://www.omegazoid.xyz",
])
