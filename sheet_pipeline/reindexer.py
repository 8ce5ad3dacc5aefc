import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from sheet_pipeline.language import is_primary_language
from sheet_pipeline.models import GroupedRows, IdentifierGroup, Row

logger = logging.getLogger(__name__)

Classifier = Callable[[Mapping[str, Any]], bool]


def _group_key(value: Any) -> Any:
    # JSON input can put lists or objects in the identifier column
    try:
        hash(value)
    except TypeError:
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
    return value


def reindex_flat(rows: List[Row], id_key: Optional[str]) -> List[Row]:
    """
    Number the identifier column 1..N in row order.

    Args:
        rows: Row mappings in output order
        id_key: Name of the identifier column, or None when the sheet has none

    Returns:
        New row mappings; other columns and row order are unchanged
    """
    if id_key is None:
        return [dict(row) for row in rows]
    return [{**row, id_key: index + 1} for index, row in enumerate(rows)]


def reindex_grouped(
    rows: List[Row],
    id_key: Optional[str],
    classifier: Classifier = is_primary_language,
) -> GroupedRows:
    """
    Cluster rows by their original identifier and number the clusters.

    Rows are partitioned by the raw identifier value in first-appearance
    order. Inside a partition, primary-language rows come before
    secondary-language rows and the sort is stable. Every row of a
    partition receives the partition's 1-based sequence number. A missing
    identifier is a value of its own, so all untagged rows share one group.

    Args:
        rows: Row mappings in input order
        id_key: Name of the identifier column, or None when the sheet has none
        classifier: Returns True for primary-language rows

    Returns:
        GroupedRows with the reordered rows and one IdentifierGroup per partition.
        Without an identifier column every row forms its own group and keeps
        its values.
    """
    if id_key is None:
        flat = [dict(row) for row in rows]
        groups = tuple(
            IdentifierGroup(
                key=None,
                sequence_number=i + 1,
                start_index=i,
                end_index=i,
                primary_flags=(classifier(row),),
            )
            for i, row in enumerate(flat)
        )
        return GroupedRows(rows=flat, groups=groups)

    partitions: Dict[Any, List[Row]] = {}
    for row in rows:
        partitions.setdefault(_group_key(row.get(id_key)), []).append(row)

    ordered: List[Row] = []
    groups = []
    for sequence_number, (key, members) in enumerate(partitions.items(), start=1):
        flagged = [(classifier(member), member) for member in members]
        flagged.sort(key=lambda pair: 0 if pair[0] else 1)
        start_index = len(ordered)
        ordered.extend({**member, id_key: sequence_number} for _, member in flagged)
        groups.append(IdentifierGroup(
            key=key,
            sequence_number=sequence_number,
            start_index=start_index,
            end_index=len(ordered) - 1,
            primary_flags=tuple(flag for flag, _ in flagged),
        ))

    logger.debug(
        "Grouped rows by identifier",
        extra={"id_key": id_key, "row_count": len(ordered), "group_count": len(groups)}
    )
    return GroupedRows(rows=ordered, groups=tuple(groups))
