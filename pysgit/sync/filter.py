"""Filtering of classified repositories."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import SgitFilterError
from ..utils import parse_comma_separated
from .models import RepoState, RepoStatePair


def resolve_states(tokens: Iterable[str]) -> frozenset[RepoState]:
    """Resolve state tokens to states by case-insensitive prefix.

    A token equal to a canonical name (ignoring case) selects that state.
    Otherwise the token must be a prefix of exactly one canonical name.

    Args:
        tokens: Raw tokens such as ``["upto", "notc"]``

    Returns:
        Set of resolved states

    Raises:
        SgitFilterError: If a token matches no state or more than one state
    """
    valid = RepoState.canonical_names()
    resolved: set[RepoState] = set()

    for token in tokens:
        lowered = token.strip().lower()
        if not lowered:
            continue

        exact = [s for s in RepoState if s.value.lower() == lowered]
        if exact:
            resolved.add(exact[0])
            continue

        matches = [s for s in RepoState if s.value.lower().startswith(lowered)]
        if not matches:
            raise SgitFilterError(f'invalid state: "{token}"', valid)
        if len(matches) > 1:
            candidates = ", ".join(s.value for s in matches)
            raise SgitFilterError(
                f'ambiguous state: "{token}" matches {candidates}', valid
            )
        resolved.add(matches[0])

    return frozenset(resolved)


@dataclass(frozen=True)
class RepoFilter:
    """Predicate selecting which classified repositories to report.

    Language, fork and state rules are AND-combined. When name fragments are
    given, the name must contain at least one of them.
    """

    languages: frozenset[str] = field(default_factory=frozenset)
    states: frozenset[RepoState] = field(default_factory=frozenset)
    names: tuple[str, ...] = ()
    forks: Optional[bool] = None

    @classmethod
    def from_strings(
        cls,
        languages: Optional[str] = None,
        states: Optional[str] = None,
        names: Optional[str] = None,
        forks: Optional[bool] = None,
    ) -> "RepoFilter":
        """Build a filter from comma-separated option values.

        Raises:
            SgitFilterError: If a state token cannot be resolved
        """
        return cls(
            languages=frozenset(parse_comma_separated(languages)),
            states=resolve_states(parse_comma_separated(states)),
            names=tuple(parse_comma_separated(names)),
            forks=forks,
        )

    def include(self, pair: RepoStatePair, check_state: bool = True) -> bool:
        """Check whether a pair passes the filter.

        Args:
            pair: Classified repository
            check_state: Whether to apply the state rule; remediation selects
                clone targets before their final state is known

        Returns:
            True if the pair should be reported
        """
        if self.languages and pair.language not in self.languages:
            return False

        if self.forks is not None and pair.fork != self.forks:
            return False

        if check_state and self.states and pair.state not in self.states:
            return False

        if self.names:
            return any(fragment in pair.name for fragment in self.names)

        return True

    __call__ = include
