from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

import pandas as pd

from yacctools.grammar import Production, Symbol


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticKind(Enum):
    UNREACHABLE_NONTERMINAL = "unreachable nonterminal"
    UNPRODUCTIVE_NONTERMINAL = "unproductive nonterminal"
    UNDEFINED_SYMBOL = "undefined symbol"
    UNUSED_PRECEDENCE = "unused precedence"
    AMBIGUOUS_NONASSOC = "ambiguous nonassoc"
    EMPTY_RULE = "empty rule"
    UNUSED_TERMINAL = "unused terminal"
    UNRESOLVED_SHIFT_REDUCE = "unresolved shift/reduce conflict"
    REDUCE_REDUCE = "reduce/reduce conflict"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    severity: Severity
    message: str
    symbol: Symbol | None = None
    production: Production | None = None
    token: Symbol | None = None

    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}"


class ValidationReport:
    """Ordered diagnostics found in a grammar. Reports are data: nothing is raised."""

    def __init__(self, diagnostics: Iterable[Diagnostic] = ()):
        self.diagnostics: tuple[Diagnostic, ...] = tuple(diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    def __getitem__(self, index: int) -> Diagnostic:
        return self.diagnostics[index]

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is kind]

    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error()]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error()]

    def has_errors(self) -> bool:
        return any(d.is_error() for d in self.diagnostics)

    def to_frame(self) -> pd.DataFrame:
        records = [
            {
                "kind": d.kind.value,
                "severity": d.severity.value,
                "symbol": d.symbol.name if d.symbol is not None else None,
                "production": str(d.production) if d.production is not None else None,
                "message": d.message,
            }
            for d in self.diagnostics
        ]
        return pd.DataFrame.from_records(
            records, columns=["kind", "severity", "symbol", "production", "message"]
        )

    def __str__(self) -> str:
        return "\n".join(str(d) for d in self.diagnostics)

    def __repr__(self) -> str:
        return f"ValidationReport({len(self.diagnostics)} diagnostics)"
