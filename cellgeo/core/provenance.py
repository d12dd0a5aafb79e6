"""
Provenance records for expression matrices built by cellgeo.

A ProvenanceRecord travels alongside each ExpressionMatrix and describes
where the matrix came from and how it was constructed.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class ProvenanceRecord:
    """
    Origin and construction parameters of an expression matrix.

    Attributes:
        source_files: File role name -> source path for every file that was read
        tool_version: Version of the tool that built the matrix
        label: Project/grouping label given to the cells
        min_cells: Gene filter threshold that was applied
        min_features: Cell filter threshold that was applied
        original_format: Layout tag for non-native inputs (e.g. "tabular")
        reserved_files: Files attached to the sample but not consumed
        created_at: UTC timestamp of construction
    """

    source_files: Dict[str, str]
    tool_version: str
    label: str
    min_cells: int
    min_features: int
    original_format: Optional[str] = None
    reserved_files: Dict[str, str] = field(default_factory=dict)
    created_at: datetime.datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to plain Python types.

        Keys whose value is None are left out so the result can be stored in
        AnnData.uns and written to h5ad unchanged.
        """
        data = {
            "source_files": dict(self.source_files),
            "tool_version": self.tool_version,
            "label": self.label,
            "min_cells": self.min_cells,
            "min_features": self.min_features,
            "original_format": self.original_format,
            "reserved_files": dict(self.reserved_files),
            "created_at": self.created_at.isoformat(),
        }
        return {k: v for k, v in data.items() if v is not None}
