from dataclasses import dataclass

from sms_ledger.models import WalletKind


@dataclass(frozen=True)
class SourceConfig:
    name: str
    kind: WalletKind


KNOWN_SOURCES: dict[str, SourceConfig] = {
    "MTN_MoMo": SourceConfig("MTN MoMo", WalletKind.MOMO),
    "Vodafone_Cash": SourceConfig("Telecel Cash", WalletKind.MOMO),
    "AirtelTigo_Money": SourceConfig("AirtelTigo Money", WalletKind.MOMO),
    "GCBBank": SourceConfig("GCB Bank", WalletKind.BANK),
    "StanChart": SourceConfig("Stanchart", WalletKind.BANK),
    "UBAGHANA": SourceConfig("UBA Ghana", WalletKind.BANK),
    "Cash": SourceConfig("Cash", WalletKind.CASH),
}

_BY_KEY = {key.lower(): config for key, config in KNOWN_SOURCES.items()}

_MOMO_CUES = ("momo", "cash", "money", "wallet")


def source_key(source: str) -> str:
    return source.strip().lower()


def display_name(source: str) -> str:
    config = _BY_KEY.get(source_key(source))
    if config:
        return config.name
    return f"{source.strip()} Wallet"


def infer_wallet_kind(source: str) -> WalletKind:
    """Best guess of the wallet kind behind a sender label; OTHER when the label carries no cue."""
    key = source_key(source)
    config = _BY_KEY.get(key)
    if config:
        return config.kind
    if "bank" in key:
        return WalletKind.BANK
    if any(cue in key for cue in _MOMO_CUES):
        return WalletKind.MOMO
    return WalletKind.OTHER
