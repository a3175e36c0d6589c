"""
models/category.py
------------------
Domain model for bill categories.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Category:
    owner_id: int
    name: str
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}
