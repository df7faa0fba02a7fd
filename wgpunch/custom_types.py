from collections.abc import (
    Callable,
)
from typing import NewType

TTopic = NewType("TTopic", str)
DescriptorSinkFn = Callable[[str], None]
