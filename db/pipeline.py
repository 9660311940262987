# db/pipeline.py
"""
Typed aggregation pipeline stages
Each stage renders to one MongoDB stage document; a Pipeline renders to the
list passed to collection.aggregate()
"""
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field


class Stage(BaseModel):
    """Base class for all pipeline stages"""

    def to_mongo(self) -> Dict[str, Any]:
        raise NotImplementedError


class Match(Stage):
    query: Dict[str, Any]

    def to_mongo(self) -> Dict[str, Any]:
        return {"$match": self.query}


class Unwind(Stage):
    path: str

    def to_mongo(self) -> Dict[str, Any]:
        path = self.path if self.path.startswith("$") else f"${self.path}"
        return {"$unwind": path}


class Group(Stage):
    """Group by `key` (a field expression, a dict of expressions, or None for all)"""
    key: Any = None
    accumulators: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$group": {"_id": self.key, **self.accumulators}}


class Lookup(Stage):
    """Left outer join against another collection"""
    from_collection: str
    local_field: str
    foreign_field: str = "_id"
    as_field: str

    def to_mongo(self) -> Dict[str, Any]:
        return {
            "$lookup": {
                "from": self.from_collection,
                "localField": self.local_field,
                "foreignField": self.foreign_field,
                "as": self.as_field
            }
        }


class Project(Stage):
    spec: Dict[str, Any]

    def to_mongo(self) -> Dict[str, Any]:
        return {"$project": self.spec}


class Sort(Stage):
    """Sort keys in priority order, e.g. [("totalSold", -1), ("_id", 1)]"""
    keys: List[Tuple[str, int]]

    def to_mongo(self) -> Dict[str, Any]:
        for field, direction in self.keys:
            if direction not in (1, -1):
                raise ValueError(f"Invalid sort direction for {field}: {direction}")
        return {"$sort": {field: direction for field, direction in self.keys}}


class Limit(Stage):
    count: int = Field(..., ge=1)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$limit": self.count}


class Pipeline:
    """Ordered composition of stages"""

    def __init__(self, *stages: Stage):
        self.stages: List[Stage] = list(stages)

    def then(self, *stages: Stage) -> "Pipeline":
        return Pipeline(*self.stages, *stages)

    def to_mongo(self) -> List[Dict[str, Any]]:
        return [stage.to_mongo() for stage in self.stages]


def safe_divide(numerator: str, denominator: str, default: Optional[float] = 0) -> Dict[str, Any]:
    """Division expression that yields `default` when the denominator is 0"""
    return {
        "$cond": [
            {"$eq": [f"${denominator}", 0]},
            default,
            {"$divide": [f"${numerator}", f"${denominator}"]}
        ]
    }
