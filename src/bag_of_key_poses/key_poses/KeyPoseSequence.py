from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .KeyPose import KeyPose


@dataclass
class KeyPoseSequence:
    """Ordered key poses matched for one sequence of frames."""
    items: List[KeyPose] = field(default_factory=list)
    class_label: Optional[str] = None

    def append(self, key_pose: KeyPose, summarize: bool = False) -> bool:
        """Appends key_pose unless summarizing and it repeats the last entry.

        Returns:
            True if the key pose was added.
        """
        if summarize and self.items and self.items[-1] is key_pose:
            return False
        self.items.append(key_pose)
        return True

    def drop_oldest(self, count: int) -> int:
        removed = min(count, len(self.items))
        del self.items[:removed]
        return removed

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[KeyPose]:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def to_record(self) -> Dict:
        return {
            "class_label": self.class_label,
            "key_pose_ids": [key_pose.identity for key_pose in self.items],
        }
