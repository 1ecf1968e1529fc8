from __future__ import annotations

import math
import typing as t

from .base import BaseModel
from .id import OutcomeID, UserID


class OutcomeScore(BaseModel):
    outcome_id: OutcomeID
    score: float | None = None

    @property
    def is_numeric(self) -> bool:
        return self.score is not None and not math.isnan(self.score)


class OutcomeRollup(BaseModel):
    user_id: UserID | None = None
    scores: list[OutcomeScore] = []

    def score_for(self, outcome_id: OutcomeID) -> float | None:
        for s in self.scores:
            if s.outcome_id == outcome_id:
                return s.score
        return None


class OutcomeCatalog(BaseModel):
    titles: dict[OutcomeID, str] = {}

    def title(self, outcome_id: OutcomeID) -> str:
        return self.titles.get(outcome_id, "")

    def find(self, title: str) -> OutcomeID | None:
        for outcome_id, t_ in self.titles.items():
            if t_ == title:
                return outcome_id
        return None


class RollupData(BaseModel):
    rollups: list[OutcomeRollup] = []
    catalog: OutcomeCatalog = OutcomeCatalog()

    @classmethod
    def from_api(cls, payload: t.Mapping[str, t.Any]) -> RollupData:
        """Parse an `outcome_rollups` response (with `include[]=outcomes`).

        Malformed entries are dropped rather than rejected: a rollup without a
        user keeps `user_id=None`, a score without an outcome link is ignored,
        and catalog entries without an id or a string title are left out.
        """
        rollups: list[OutcomeRollup] = []
        for raw in payload.get("rollups") or []:
            if not isinstance(raw, t.Mapping):
                continue
            links = raw.get("links") or {}
            user = links.get("user") if isinstance(links, t.Mapping) else None
            scores: list[OutcomeScore] = []
            for s in raw.get("scores") or []:
                outcome = _link(s, "outcome")
                if outcome is None:
                    continue
                scores.append(OutcomeScore(outcome_id=OutcomeID(outcome), score=_numeric(s.get("score"))))
            rollups.append(OutcomeRollup(user_id=_id_or_none(UserID, user), scores=scores))

        titles: dict[OutcomeID, str] = {}
        linked = payload.get("linked")
        outcomes = (linked.get("outcomes") if isinstance(linked, t.Mapping) else None) or []
        for o in outcomes:
            if not isinstance(o, t.Mapping):
                continue
            outcome_id = _id_or_none(OutcomeID, o.get("id"))
            title = o.get("title")
            if outcome_id is not None and isinstance(title, str):
                titles[outcome_id] = title

        return cls(rollups=rollups, catalog=OutcomeCatalog(titles=titles))


IDT = t.TypeVar("IDT", UserID, OutcomeID)


def _id_or_none(tp: type[IDT], v: t.Any) -> IDT | None:
    try:
        return tp(v)
    except ValueError:
        return None


def _link(score: t.Any, name: str) -> str | int | None:
    if not isinstance(score, t.Mapping):
        return None
    links = score.get("links")
    if not isinstance(links, t.Mapping):
        return None
    v = links.get(name)
    if isinstance(v, bool) or not isinstance(v, (str, int)) or str(v) == "":
        return None
    return v


def _numeric(v: t.Any) -> float | None:
    # bool is an int subclass, but never a score
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)
