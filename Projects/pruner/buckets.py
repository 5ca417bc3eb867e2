"""Exponential age buckets and per-bucket retention.

Bucket 0 holds everything younger than one day. Bucket k >= 1 holds ages in
[2^(k-1), 2^k) days, so the upper bound of bucket k is always 2^k days.
Nothing in here touches the filesystem.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class FileEntry:
    path: Path
    age_days: float
    timestamp: float = 0.0


@dataclass(frozen=True)
class BucketDecision:
    index: int
    group: Optional[Path]
    kept: Tuple[FileEntry, ...]
    deleted: Tuple[FileEntry, ...]

    @property
    def bounds(self) -> Tuple[float, float]:
        return bucket_bounds(self.index)


@dataclass(frozen=True)
class PrunePlan:
    keep_count: int
    buckets: Tuple[BucketDecision, ...]

    @property
    def kept(self) -> List[FileEntry]:
        return [e for b in self.buckets for e in b.kept]

    @property
    def deleted(self) -> List[FileEntry]:
        return [e for b in self.buckets for e in b.deleted]

    @property
    def total(self) -> int:
        return sum(len(b.kept) + len(b.deleted) for b in self.buckets)


def bucket_index(age_days: float) -> int:
    if math.isnan(age_days) or math.isinf(age_days):
        raise ValueError(f"age must be finite, got {age_days!r}")
    # Future-dated files (negative age) count as brand new.
    if age_days < 1.0:
        return 0
    # frexp gives age = m * 2**e with 0.5 <= m < 1, i.e. 2**(e-1) <= age < 2**e.
    _, exp = math.frexp(age_days)
    return exp


def bucket_bounds(index: int) -> Tuple[float, float]:
    if index < 0:
        raise ValueError(f"bucket index must be >= 0, got {index}")
    upper = float(2 ** index)
    lower = 0.0 if index == 0 else upper / 2
    return lower, upper


def _oldest_first(entry: FileEntry) -> Tuple[float, str]:
    return (-entry.age_days, str(entry.path))


def select_retained(entries: Iterable[FileEntry], keep: int) -> Tuple[List[FileEntry], List[FileEntry]]:
    if keep < 0:
        raise ValueError(f"keep must be >= 0, got {keep}")
    ordered = sorted(entries, key=_oldest_first)
    return ordered[:keep], ordered[keep:]


def _group_key(entry: FileEntry, per_directory: bool) -> Tuple[str, int]:
    parent = str(entry.path.parent) if per_directory else ""
    return parent, bucket_index(entry.age_days)


def group_entries(entries: Iterable[FileEntry], per_directory: bool = False) -> Dict[Tuple[str, int], List[FileEntry]]:
    groups: Dict[Tuple[str, int], List[FileEntry]] = defaultdict(list)
    for entry in entries:
        groups[_group_key(entry, per_directory)].append(entry)
    return {key: groups[key] for key in sorted(groups)}


def build_plan(entries: Sequence[FileEntry], keep: int, per_directory: bool = False) -> PrunePlan:
    if keep < 0:
        raise ValueError(f"keep must be >= 0, got {keep}")
    decisions = []
    for (parent, index), members in group_entries(entries, per_directory).items():
        kept, deleted = select_retained(members, keep)
        decisions.append(
            BucketDecision(
                index=index,
                group=Path(parent) if per_directory else None,
                kept=tuple(kept),
                deleted=tuple(deleted),
            )
        )
    return PrunePlan(keep_count=keep, buckets=tuple(decisions))
