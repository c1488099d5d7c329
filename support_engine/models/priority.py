from enum import StrEnum


class EscalationPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @property
    def needs_oncall(self) -> bool:
        return self in (EscalationPriority.HIGH, EscalationPriority.URGENT)

    @classmethod
    def highest(cls, *priorities: "EscalationPriority") -> "EscalationPriority":
        """The strongest of the given floors (LOW when none are given)."""
        result = cls.LOW
        for priority in priorities:
            if priority.rank > result.rank:
                result = priority
        return result


_PRIORITY_RANK = {
    EscalationPriority.LOW: 1,
    EscalationPriority.MEDIUM: 2,
    EscalationPriority.HIGH: 3,
    EscalationPriority.URGENT: 4,
}
