"""
HTTP Server for the NumberWar dev node

Hosts one deployed NumberWar ledger together with the confidential runtime,
the input verifier and the decryption oracle.
"""
import threading
from typing import Any, Dict, Optional

import uvicorn
from eth_hash.auto import keccak
from eth_keys.exceptions import BadSignature
from fastapi import FastAPI, HTTPException

from numberwar.config import NETWORK_CONFIG
from numberwar.errors import LedgerRejection
from numberwar.model.account import normalize_address, same_address
from numberwar.service.crypto_ops.input_verifier import InputVerifier
from numberwar.service.crypto_ops.runtime import ConfidentialRuntime
from numberwar.service.decryption.oracle import DecryptionOracle, OracleRejection
from numberwar.service.ledger.number_war import NumberWarLedger
from numberwar.service.ledger.transaction import WRITE_METHODS, recover_sender, signing_payload

app = FastAPI(title="NumberWar dev node")

READ_METHODS = ("hasActiveRound", "getSystemNumber", "getLastOutcome")


# Global state - set by initialize_server
class ServerState:
    def __init__(self):
        self.runtime: Optional[ConfidentialRuntime] = None
        self.verifier: Optional[InputVerifier] = None
        self.ledger: Optional[NumberWarLedger] = None
        self.oracle: Optional[DecryptionOracle] = None
        self.chain_id: int = NETWORK_CONFIG["chain_id"]
        self.nonces: Dict[str, int] = {}
        self.nonce_lock = threading.Lock()

state = ServerState()


def initialize_server(
    runtime: Optional[ConfidentialRuntime] = None,
    chain_id: Optional[int] = None,
) -> ServerState:
    """Deploy a fresh ledger (and its runtime services) into the server state"""
    state.runtime = runtime or ConfidentialRuntime()
    state.chain_id = chain_id or NETWORK_CONFIG["chain_id"]
    state.verifier = InputVerifier(state.runtime)
    state.ledger = NumberWarLedger(state.runtime, state.verifier.address)
    state.oracle = DecryptionOracle(state.runtime, chain_id=state.chain_id)
    state.nonces = {}

    print(f"NumberWar contract: {state.ledger.address}")
    print(f"[Node] Oracle: {state.oracle.address}, input verifier: {state.verifier.address}")
    return state


def start_node_in_background(host: str = None, port: int = None) -> threading.Thread:
    """Run the node with uvicorn in a daemon thread (local play)"""
    host = host or NETWORK_CONFIG["host"]
    port = port or NETWORK_CONFIG["port"]

    def run_server():
        uvicorn.run(app, host=host, port=port, log_level="warning")

    thread = threading.Thread(target=run_server, daemon=True)
    thread.start()
    print(f"[Node] HTTP server started at http://{host}:{port}")
    return thread


def _require_ready():
    if state.ledger is None:
        raise HTTPException(status_code=503, detail="Node not initialized")


def _parse_account(account: str) -> str:
    try:
        return normalize_address(account)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================================================
# Node information
# ============================================================================

@app.get("/health")
async def health():
    return {"status": "ok", "ready": state.ledger is not None}


@app.get("/v1/info")
async def info():
    _require_ready()
    return {
        "contractAddress": state.ledger.address,
        "oracleAddress": state.oracle.address,
        "inputVerifierAddress": state.verifier.address,
        "chainId": state.chain_id,
        "minValue": state.ledger.min_value,
        "maxValue": state.ledger.max_value,
    }


@app.get("/v1/public-key")
async def public_key():
    _require_ready()
    return state.runtime.public_bundle()


# ============================================================================
# Input verification
# ============================================================================

@app.post("/v1/input-proof")
def input_proof(request: dict):
    """
    Attest client ciphertexts.

    Body: {"ciphertexts": [b64, ...], "contractAddress": ..., "userAddress": ...}
    """
    _require_ready()
    try:
        handles, proof = state.verifier.verify_inputs(
            request["ciphertexts"],
            request["contractAddress"],
            request["userAddress"],
            state.ledger.min_value,
            state.ledger.max_value,
        )
    except (KeyError, TypeError, ValueError, RuntimeError) as e:
        print(f"[Node] ❌ Input rejected: {e}")
        raise HTTPException(status_code=400, detail=f"Input rejected: {e}")

    return {"handles": [h.hex() for h in handles], "inputProof": proof}


# ============================================================================
# Transactions
# ============================================================================

@app.get("/v1/nonce/{account}")
async def get_nonce(account: str):
    account = _parse_account(account)
    return {"nonce": state.nonces.get(account, 0)}


def _authenticate(tx: Dict[str, Any]) -> str:
    try:
        sender = recover_sender(tx)
        claimed = normalize_address(tx["from"])
    except (KeyError, TypeError, ValueError, BadSignature) as e:
        raise HTTPException(status_code=401, detail=f"Invalid transaction signature: {e}")

    if not same_address(sender, claimed):
        raise HTTPException(status_code=401, detail="Signature does not match sender")
    if tx.get("chainId") != state.chain_id:
        raise HTTPException(status_code=400, detail="Wrong chain id")
    if not same_address(tx.get("to", ""), state.ledger.address):
        raise HTTPException(status_code=400, detail="Unknown contract address")

    with state.nonce_lock:
        expected = state.nonces.get(claimed, 0)
        if tx.get("nonce") != expected:
            raise HTTPException(status_code=401, detail=f"Invalid nonce (expected {expected})")
        state.nonces[claimed] = expected + 1
    return claimed


@app.post("/v1/tx")
def send_transaction(tx: dict):
    """
    Execute a signed ledger transaction.

    A rejected call still consumes the sender's nonce.
    """
    _require_ready()
    method = tx.get("method")
    if method not in WRITE_METHODS:
        raise HTTPException(status_code=404, detail=f"Unknown method: {method}")

    sender = _authenticate(tx)
    tx_hash = "0x" + keccak(signing_payload(tx).encode("utf-8")).hex()
    args = tx.get("args") or []

    try:
        if method == "joinGame":
            event = state.ledger.join_game(sender)
        else:
            if not isinstance(args, list) or len(args) != 2:
                raise HTTPException(status_code=400, detail="submitNumber expects (handle, proof)")
            event = state.ledger.submit_number(sender, args[0], args[1])
    except LedgerRejection as e:
        print(f"[Node] Reverted {method} from {sender}: {e.message}")
        raise HTTPException(
            status_code=409,
            detail={"error": type(e).__name__, "message": e.message, "transactionHash": tx_hash},
        )

    return {
        "transactionHash": tx_hash,
        "status": 1,
        "blockNumber": event.block,
        "events": [event.to_dict()],
    }


@app.get("/v1/call/{method}/{account}")
async def call(method: str, account: str):
    _require_ready()
    if method not in READ_METHODS:
        raise HTTPException(status_code=404, detail=f"Unknown method: {method}")
    account = _parse_account(account)

    if method == "hasActiveRound":
        return {"result": state.ledger.has_active_round(account)}
    if method == "getSystemNumber":
        return {"result": state.ledger.get_system_number(account).hex()}
    return {"result": state.ledger.get_last_outcome(account).hex()}


@app.get("/v1/round/{account}")
async def round_state(account: str):
    _require_ready()
    return state.ledger.round_snapshot(_parse_account(account))


@app.get("/v1/events")
async def events(player: Optional[str] = None):
    _require_ready()
    if player is not None:
        player = _parse_account(player)
    return {"events": [e.to_dict() for e in state.ledger.events(player)]}


# ============================================================================
# Decryption oracle
# ============================================================================

@app.post("/v1/user-decrypt")
def user_decrypt(request: dict):
    _require_ready()
    try:
        results = state.oracle.user_decrypt(request)
    except OracleRejection as e:
        print(f"[Node] ❌ Decryption request rejected: {e}")
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"results": results}
