from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence


class ExerciseAllocator:
    """Selects a day's exercises from the catalog for a list of muscle groups."""

    @staticmethod
    def group_quotas(group_count: int, quota: int) -> List[int]:
        """Split ``quota`` across ``group_count`` groups.

        Every group gets ``quota // group_count`` and the first
        ``quota % group_count`` groups get one more, so the parts always sum
        to ``quota``.
        """
        if group_count <= 0 or quota <= 0:
            return [0] * max(group_count, 0)
        base, extra = divmod(quota, group_count)
        return [base + 1 if i < extra else base for i in range(group_count)]

    @staticmethod
    def order_candidates(
        candidates: Sequence[dict],
        objective: str,
        rng: Optional[random.Random] = None,
    ) -> List[dict]:
        """Order one group's candidates by the objective's priority."""
        ordered = list(candidates)
        if objective == "gain_muscle":
            ordered.sort(key=lambda ex: 0 if ex.get("is_compound") else 1)
        elif objective == "maintain":
            (rng or random.Random()).shuffle(ordered)
        return ordered

    @classmethod
    def allocate(
        cls,
        groups: Iterable[str],
        quota: int,
        objective: str,
        catalog: Sequence[dict],
        rng: Optional[random.Random] = None,
    ) -> List[dict]:
        """Return at most ``quota`` distinct catalog entries for ``groups``."""
        groups = list(groups)
        if not groups or quota <= 0:
            return []

        by_group: dict[str, list[dict]] = {}
        for group in groups:
            members = [ex for ex in catalog if ex.get("muscle_group") == group]
            if members:
                by_group[group] = members

        selected: list[dict] = []
        seen: set = set()
        for group, take in zip(groups, cls.group_quotas(len(groups), quota)):
            if group not in by_group:
                continue
            ordered = cls.order_candidates(by_group[group], objective, rng)
            for ex in ordered[:take]:
                if ex["id"] not in seen:
                    seen.add(ex["id"])
                    selected.append(ex)

        if len(selected) < quota:
            for ex in catalog:
                if len(selected) >= quota:
                    break
                if ex["id"] not in seen:
                    seen.add(ex["id"])
                    selected.append(ex)

        return selected[:quota]
