from __future__ import annotations

from typing import List

MUSCLE_GROUPS: tuple[str, ...] = (
    "Chest",
    "Back",
    "Shoulders",
    "Arms",
    "Quadriceps",
    "Hamstrings",
    "Calves",
    "Core",
)


class MuscleGroupResolver:
    """Turns a free-text day descriptor into canonical muscle groups.

    Keywords are matched as lower-case substrings. Direct keywords are tried
    first and collected in table order; the coarser categories are only used
    when no direct keyword matched.
    """

    DIRECT_KEYWORDS: tuple[tuple[str, str], ...] = (
        ("chest", "Chest"),
        ("pecho", "Chest"),
        ("back", "Back"),
        ("espalda", "Back"),
        ("shoulders", "Shoulders"),
        ("hombros", "Shoulders"),
        ("biceps", "Arms"),
        ("bíceps", "Arms"),
        ("triceps", "Arms"),
        ("tríceps", "Arms"),
        ("arms", "Arms"),
        ("brazos", "Arms"),
        ("quadriceps", "Quadriceps"),
        ("cuádriceps", "Quadriceps"),
        ("hamstrings", "Hamstrings"),
        ("isquiotibiales", "Hamstrings"),
        ("calves", "Calves"),
        ("gemelos", "Calves"),
        ("core", "Core"),
        ("abdomen", "Core"),
        ("abdominales", "Core"),
    )

    CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
        ("push", ("Chest", "Shoulders", "Arms")),
        ("pull", ("Back", "Arms")),
        ("upper", ("Chest", "Back", "Shoulders", "Arms")),
        ("lower", ("Quadriceps", "Hamstrings", "Calves", "Core")),
        ("legs", ("Quadriceps", "Hamstrings", "Calves")),
        ("piernas", ("Quadriceps", "Hamstrings", "Calves")),
        ("full body", MUSCLE_GROUPS),
    )

    REST_KEYWORDS: tuple[str, ...] = ("rest", "descanso", "cardio")

    @classmethod
    def resolve(cls, descriptor: str) -> List[str]:
        """Return the deduplicated muscle groups mentioned in ``descriptor``."""
        text = (descriptor or "").lower()
        found: list[str] = [
            group for keyword, group in cls.DIRECT_KEYWORDS if keyword in text
        ]
        if not found:
            for keyword, groups in cls.CATEGORY_KEYWORDS:
                if keyword in text:
                    found.extend(groups)
        unique = list(dict.fromkeys(found))
        if not unique and cls.mentions_rest(text):
            # rest days still get a minimal core assignment when allocated
            return ["Core"]
        return unique

    @classmethod
    def mentions_rest(cls, descriptor: str) -> bool:
        text = (descriptor or "").lower()
        return any(keyword in text for keyword in cls.REST_KEYWORDS)

    @classmethod
    def is_rest_day(cls, descriptor: str) -> bool:
        return cls.mentions_rest(descriptor)

    @classmethod
    def short_name(cls, descriptor: str, weekday: str) -> str:
        """Return the calendar label for a day."""
        if cls.is_rest_day(descriptor):
            return "Rest"
        groups = cls.resolve(descriptor)
        if groups:
            return ", ".join(g[:1].upper() + g[1:] for g in groups)
        return weekday
