"""
A member is a named capability one type offers to scripts: either a method or a field.
The two form a closed sum. Every site that consumes a member handles both,
and ends in assert_never so that a third kind cannot slip by unnoticed.
"""
from typing import Any, Callable, NamedTuple, Union, TYPE_CHECKING
from .marshaling import FieldKind

if TYPE_CHECKING:
	from .values import CallFrame

class Method(NamedTuple):
	name: str
	function: Callable[["CallFrame"], int]

class FieldAccessor(NamedTuple):
	name: str
	attribute: str
	kind: FieldKind
	getter: Callable[[Any], Any]
	setter: Callable[[Any, Any], None]

Member = Union[Method, FieldAccessor]

