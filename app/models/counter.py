# app/models/counter.py
from beanie import Document


class SequenceCounter(Document):
    """Holds the next value for a named sequence."""
    # _id dipakai sebagai nama sequence
    id: str
    value: int = 0

    class Settings:
        name = "sequence_counters"
