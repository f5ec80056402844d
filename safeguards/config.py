"""
Safeguards Configuration

Node configuration for the spot-only fork: the governance-safeguards section
that builds the live Policy, the spot-only mode flags, and deployment
parameters. Read once at startup from a JSON file, with env overrides.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from safeguards.errors import ConfigError
from safeguards.policy import (
    LEVERAGE_RESTRICTED_KEYWORDS,
    LEVERAGE_RESTRICTED_MODULES,
    Policy,
)

CONFIG_PATH_ENV = "SAFEGUARDS_CONFIG_PATH"
ENABLED_ENV = "SAFEGUARDS_ENABLED"
DISABLE_LEVERAGE_ENV = "SAFEGUARDS_DISABLE_LEVERAGE_MODULES"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


# ---------------------------------------------------------------------------
# governance-safeguards
# ---------------------------------------------------------------------------

@dataclass
class SafeguardsConfig:
    enabled: bool = True
    disable_leverage_modules: bool = True
    additional_restricted_types: list[str] = field(default_factory=list)
    additional_restricted_modules: list[str] = field(default_factory=list)

    def to_policy(self) -> Policy:
        """Defaults plus the additional entries. Disabled config -> disabled policy."""
        if not self.enabled:
            return Policy(enabled=False)
        return Policy(
            enabled=self.disable_leverage_modules,
            restricted_keywords=LEVERAGE_RESTRICTED_KEYWORDS + tuple(self.additional_restricted_types),
            restricted_modules=LEVERAGE_RESTRICTED_MODULES + tuple(self.additional_restricted_modules),
        )


def check_policy_consistency(policy: Policy) -> None:
    """Reject an enabled policy that would allow everything or deny everything.

    Empty lists match nothing; a blank entry is a substring of every text.
    """
    if not policy.enabled:
        return
    if not policy.restricted_keywords:
        raise ConfigError("enabled policy has no restricted keywords")
    if not policy.restricted_modules:
        raise ConfigError("enabled policy has no restricted modules")
    for kind, terms in (("keyword", policy.restricted_keywords),
                        ("module", policy.restricted_modules)):
        if any(not t.strip() for t in terms):
            raise ConfigError(f"blank restricted {kind} would match every proposal")


# ---------------------------------------------------------------------------
# spot-only
# ---------------------------------------------------------------------------

class LeverageNotAllowedInSpotMode(ConfigError):
    def __init__(self):
        super().__init__("leverage is not allowed in spot-only mode")


class MarginTradingMustBeDisabled(ConfigError):
    def __init__(self):
        super().__init__("margin trading must be disabled in spot-only mode")


class PerpetualContractsMustBeDisabled(ConfigError):
    def __init__(self):
        super().__init__("perpetual contracts must be disabled in spot-only mode")


@dataclass
class SpotOnlyConfig:
    enabled: bool = True
    chain_id: str = "osmosis-spot-1"
    chain_name: str = "Osmosis Spot-Only DEX"
    description: str = (
        "A spot-only decentralized exchange fork of Osmosis, focused on AMM "
        "trading without leveraged positions"
    )
    max_leverage: Decimal = Decimal("0")     # 0 = spot only
    disable_margin_trading: bool = True
    disable_perpetual_contracts: bool = True
    enforce_spot_only_validation: bool = True

    def validate(self) -> None:
        if not self.enabled:
            return
        if not self.max_leverage.is_finite():
            raise ConfigError(f"max_leverage must be finite, got {self.max_leverage}")
        if self.max_leverage > 0:
            raise LeverageNotAllowedInSpotMode()
        if not self.disable_margin_trading:
            raise MarginTradingMustBeDisabled()
        if not self.disable_perpetual_contracts:
            raise PerpetualContractsMustBeDisabled()


@dataclass
class SpotOnlyGenesisConfig:
    spot_only_mode: bool = True
    disable_leverage_genesis: bool = True
    max_position_size: Decimal = Decimal("0")
    enforce_spot_limits: bool = True
    safeguards_enabled: bool = True


def spot_only_genesis_params() -> SpotOnlyGenesisConfig:
    return SpotOnlyGenesisConfig()


# ---------------------------------------------------------------------------
# deployment
# ---------------------------------------------------------------------------

@dataclass
class DeploymentConfig:
    binary_name: str = "osmosisd-spot"
    service_name: str = "osmosis-spot-dex"
    rpc_port: int = 26657
    api_port: int = 1317
    grpc_port: int = 9090
    p2p_port: int = 26656
    min_cpu_cores: int = 4
    min_ram_gb: int = 16
    min_disk_gb: int = 500
    network_type: str = "mainnet"


# ---------------------------------------------------------------------------
# App config + loading
# ---------------------------------------------------------------------------

@dataclass
class AppConfig:
    governance_safeguards: SafeguardsConfig = field(default_factory=SafeguardsConfig)
    spot_only: SpotOnlyConfig = field(default_factory=SpotOnlyConfig)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)


SECTIONS = {
    "governance-safeguards": ("governance_safeguards", SafeguardsConfig),
    "spot-only": ("spot_only", SpotOnlyConfig),
    "deployment": ("deployment", DeploymentConfig),
}


def default_app_config() -> AppConfig:
    return AppConfig()


def _coerce(section: str, name: str, default: Any, raw: Any) -> Any:
    where = f"{section}.{name}"
    if isinstance(default, bool):
        if not isinstance(raw, bool):
            raise ConfigError(f"{where}: expected bool, got {type(raw).__name__}")
        return raw
    if isinstance(default, Decimal):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            raise ConfigError(f"{where}: not a decimal: {raw!r}")
        if not value.is_finite():
            raise ConfigError(f"{where}: must be finite, got {raw!r}")
        return value
    if isinstance(default, int):
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ConfigError(f"{where}: expected int, got {type(raw).__name__}")
        return raw
    if isinstance(default, str):
        if not isinstance(raw, str):
            raise ConfigError(f"{where}: expected string, got {type(raw).__name__}")
        return raw
    if isinstance(default, list):
        if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
            raise ConfigError(f"{where}: expected list of strings")
        return list(raw)
    return raw


def _build_section(section: str, cls: type, data: Any):
    if not isinstance(data, dict):
        raise ConfigError(f"{section}: expected an object")
    instance = cls()
    for f in fields(cls):
        if f.name in data:
            setattr(instance, f.name, _coerce(section, f.name, getattr(instance, f.name), data[f.name]))
    return instance


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigError(f"{name}: not a boolean: {raw!r}")


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """
    Load the node config.

    Path comes from the argument, else SAFEGUARDS_CONFIG_PATH, else the
    built-in defaults are used. Unknown keys are ignored.
    """
    config = default_app_config()
    path = path or os.environ.get(CONFIG_PATH_ENV)

    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"config file not found: {path}")
        except json.JSONDecodeError as exc:
            raise ConfigError(f"config file is not valid JSON: {exc}")
        if not isinstance(data, dict):
            raise ConfigError("config root must be an object")

        for key, (attr, cls) in SECTIONS.items():
            if key in data:
                setattr(config, attr, _build_section(key, cls, data[key]))

    enabled = _env_flag(ENABLED_ENV)
    if enabled is not None:
        config.governance_safeguards.enabled = enabled
    disable_leverage = _env_flag(DISABLE_LEVERAGE_ENV)
    if disable_leverage is not None:
        config.governance_safeguards.disable_leverage_modules = disable_leverage

    return config
