"""Per-vector RMSProp state."""

from dataclasses import dataclass, fields
from typing import Any, Optional

import torch
from torch import Tensor


@dataclass
class RMSPropState:
    """Mutable state threaded through every step for one parameter vector.

    ``ms`` and the buffers start out absent and are filled in lazily by the
    first step that needs them.
    """

    eval_counter: int = 0
    ms: Optional[float] = None
    momentum_buffer: Optional[Tensor] = None
    scratch_delta: Optional[Tensor] = None

    def state_dict(self) -> dict[str, Any]:
        """Checkpoint record. The scratch buffer is not persisted."""
        return {
            "eval_counter": self.eval_counter,
            "ms": self.ms,
            "momentum_buffer": None if self.momentum_buffer is None else self.momentum_buffer.clone(),
        }

    @classmethod
    def from_state_dict(cls, record: dict[str, Any]) -> "RMSPropState":
        buf = record.get("momentum_buffer")
        ms = record.get("ms")
        return cls(
            eval_counter=int(record.get("eval_counter", 0)),
            ms=None if ms is None else float(ms),
            momentum_buffer=None if buf is None else torch.as_tensor(buf).clone(),
        )

    def as_dict(self) -> dict[str, Any]:
        # shallow: tensors are shared, not copied
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "RMSPropState":
        return cls(**values)
