"""Configuration loading: TOML file + environment variables + deployments.json."""

from __future__ import annotations

import json
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from keep_rewards.chain.registry import CONTRACT_TABLE
from keep_rewards.models.config import AppConfig, ContractSource, EventsConfig, QueryConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "KEEP_REWARDS_",
) -> AppConfig:
    """Load configuration from TOML file, env vars, and deployments.json.

    Priority (highest wins):
        1. Environment variables (KEEP_REWARDS_RPC_URL, etc.)
        2. TOML config file
        3. deployments.json (contract addresses only)
        4. Defaults from AppConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = AppConfig()
    if v := raw.get("log_level"):
        cfg.log_level = str(v)

    # ── Network section ────────────────────────────────────
    network = raw.get("network", {})
    if v := network.get("rpc_url"):
        cfg.rpc_url = str(v)
    if (v := network.get("chain_id")) is not None:
        cfg.chain_id = int(v)
    if v := network.get("start_block"):
        cfg.start_block = int(v)
    if v := network.get("from_address"):
        cfg.from_address = str(v)
    if v := network.get("request_timeout"):
        cfg.request_timeout = int(v)
    if v := network.get("deployments_path"):
        cfg.deployments_path = str(v)

    # ── Events section ─────────────────────────────────────
    events = raw.get("events", {})
    defaults = EventsConfig()
    cfg.events = EventsConfig(
        page_size=int(events.get("page_size", defaults.page_size)),
        max_retries=int(events.get("max_retries", defaults.max_retries)),
        retry_backoff=float(events.get("retry_backoff", defaults.retry_backoff)),
    )

    # ── Query section ──────────────────────────────────────
    query = raw.get("query", {})
    timeout = float(query.get("timeout", 0))
    cfg.query = QueryConfig(
        max_concurrency=max(int(query.get("max_concurrency", QueryConfig.max_concurrency)), 1),
        timeout=timeout if timeout > 0 else None,
    )

    # ── Contracts ──────────────────────────────────────────
    if cfg.deployments_path:
        _load_deployments(cfg, cfg.deployments_path)

    for name, section in raw.get("contracts", {}).items():
        source = cfg.contracts.setdefault(name, ContractSource())
        if v := section.get("address"):
            source.address = str(v)
        if v := section.get("artifact"):
            source.artifact = str(Path(v).expanduser())
        if (v := section.get("start_block")) is not None:
            source.start_block = int(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if chain_id := os.environ.get(f"{env_prefix}CHAIN_ID"):
        cfg.chain_id = int(chain_id)
    if sender := os.environ.get(f"{env_prefix}FROM_ADDRESS"):
        cfg.from_address = sender
    if start := os.environ.get(f"{env_prefix}START_BLOCK"):
        cfg.start_block = int(start)
    for spec in CONTRACT_TABLE:
        if address := os.environ.get(f"{env_prefix}{spec.name.upper()}_ADDRESS"):
            cfg.contracts.setdefault(spec.name, ContractSource()).address = address

    return cfg


def _load_deployments(cfg: AppConfig, deployments_path: str) -> None:
    """Load contract addresses from a deployments.json file.

    Expected shape: {"TokenStaking": {"address": "0x...", "block": 123}, ...}
    """
    p = Path(deployments_path).expanduser()
    if not p.is_absolute():
        # Try relative to CWD
        p = Path.cwd() / p
    if not p.exists():
        return

    with open(p) as f:
        data = json.load(f)

    for name, entry in data.items():
        if not isinstance(entry, dict):
            continue
        source = cfg.contracts.setdefault(name, ContractSource())
        if addr := entry.get("address"):
            source.address = str(addr)
        block = entry.get("block", entry.get("start_block"))
        if block is not None:
            source.start_block = int(block)
