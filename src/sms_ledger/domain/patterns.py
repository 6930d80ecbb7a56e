"""
Named recognizers for provider-specific SMS phrasing.

The library is data: the message classifier walks these recognizers in order
and never branches on provider names itself. New phrasings are added with
``PatternLibrary.extend`` instead of touching classifier control flow.
"""

import re
from dataclasses import dataclass
from enum import Enum

from sms_ledger.models import WalletKind


class RecognizerRole(str, Enum):
    TRANSFER = "transfer"  # transfer cue only, no direction
    ROUTE = "route"  # transfer cue with source/destination kinds
    BALANCE = "balance"  # captures a balance amount in group 1


@dataclass(frozen=True)
class Recognizer:
    name: str
    pattern: re.Pattern[str]
    role: RecognizerRole
    source_kind: WalletKind | None = None
    dest_kind: WalletKind | None = None

    @classmethod
    def route(cls, name: str, regex: str, source: WalletKind, dest: WalletKind) -> "Recognizer":
        return cls(name, re.compile(regex, re.IGNORECASE), RecognizerRole.ROUTE, source, dest)

    @classmethod
    def phrase(cls, text: str) -> "Recognizer":
        return cls(
            f"phrase:{text}",
            re.compile(re.escape(text), re.IGNORECASE),
            RecognizerRole.TRANSFER,
        )

    @classmethod
    def balance(cls, name: str, regex: str) -> "Recognizer":
        compiled = re.compile(regex, re.IGNORECASE)
        if compiled.groups < 1:
            raise ValueError(f"Balance recognizer '{name}' needs a capture group")
        return cls(name, compiled, RecognizerRole.BALANCE)

    def search(self, text: str) -> re.Match[str] | None:
        return self.pattern.search(text)


@dataclass(frozen=True)
class PatternLibrary:
    version: str
    recognizers: tuple[Recognizer, ...]

    def _with_role(self, *roles: RecognizerRole) -> tuple[Recognizer, ...]:
        return tuple(r for r in self.recognizers if r.role in roles)

    @property
    def route_recognizers(self) -> tuple[Recognizer, ...]:
        return self._with_role(RecognizerRole.ROUTE)

    @property
    def transfer_signals(self) -> tuple[Recognizer, ...]:
        return self._with_role(RecognizerRole.ROUTE, RecognizerRole.TRANSFER)

    @property
    def balance_recognizers(self) -> tuple[Recognizer, ...]:
        return self._with_role(RecognizerRole.BALANCE)

    def names(self) -> list[str]:
        return [r.name for r in self.recognizers]

    def extend(self, *recognizers: Recognizer, version: str | None = None) -> "PatternLibrary":
        """Return a new library with ``recognizers`` appended after the existing ones of each role."""
        taken = set(self.names())
        for recognizer in recognizers:
            if recognizer.name in taken:
                raise ValueError(f"Duplicate recognizer name: {recognizer.name}")
            taken.add(recognizer.name)
        return PatternLibrary(
            version=version or f"{self.version}+{len(recognizers)}",
            recognizers=self.recognizers + tuple(recognizers),
        )


DEFAULT_LIBRARY = PatternLibrary(
    version="2024.1",
    recognizers=(
        # Bank inflows from MoMo (StanChart "Instant Pay" alerts)
        Recognizer.route("bank_from_momo", r"instant pay: (\d+)|from \d+", WalletKind.MOMO, WalletKind.BANK),
        # MoMo inflows from a bank (Emergent payment alerts)
        Recognizer.route(
            "momo_from_bank",
            r"payment received.*from (emergent|bank|transfer)",
            WalletKind.BANK,
            WalletKind.MOMO,
        ),
        Recognizer.route("momo_to_bank", r"transfer.*to (bank|acc|account)", WalletKind.MOMO, WalletKind.BANK),
        Recognizer.phrase("transfer to"),
        Recognizer.phrase("transferred to"),
        Recognizer.phrase("payment to"),
        Recognizer.balance("momo_balance", r"current balance: ghs\s*([0-9,.]+)"),
        Recognizer.balance("bank_balance", r"available balance is now ghs\s*([0-9,.]+)"),
        Recognizer.balance("generic_balance", r"balance:?\s*ghs\s*([0-9,.]+)"),
    ),
)
