"""
The closed set of field kinds that may cross between Python and Lua,
and the rules for carrying a value across in each direction.

A field's kind comes from the annotation on the native class:

	class ElementNode:
		pointless_bool: bool
		depth: Int32

Anything without a rule here is refused when the field is registered,
long before a script could trip over it.
"""
from enum import Enum
from typing import Any, Callable, NewType, Union, assert_never, get_type_hints

import lupa

from .diagnostics import TypeMismatchError, UnsupportedFieldTypeError

Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)

class FieldKind(Enum):
	BOOLEAN = ("boolean", 0)
	INT32 = ("integer", 32)
	INT64 = ("integer", 64)
	STRING = ("string", 0)

	def __init__(self, lua_kind:str, bits:int):
		self.lua_kind = lua_kind
		self.bits = bits

	def expected(self) -> str:
		""" How an error message should describe what this kind wants. """
		if self.bits: return "%s (%d-bit)" % (self.lua_kind, self.bits)
		return self.lua_kind

ANNOTATION_KINDS = {
	bool: FieldKind.BOOLEAN,
	int: FieldKind.INT64,
	Int32: FieldKind.INT32,
	Int64: FieldKind.INT64,
	str: FieldKind.STRING,
}

def field_kind(native_type:type, attribute:str, declared:Union[FieldKind, type, None]=None) -> FieldKind:
	"""
	Settle the kind of one field, either from what the caller declared
	or from the annotation the native class carries for that attribute.
	"""
	if isinstance(declared, FieldKind):
		return declared
	if declared is None:
		hints = get_type_hints(native_type)
		if attribute not in hints:
			raise UnsupportedFieldTypeError(native_type.__name__, attribute, None)
		declared = hints[attribute]
	try: return ANNOTATION_KINDS[declared]
	except (KeyError, TypeError): raise UnsupportedFieldTypeError(native_type.__name__, attribute, declared) from None

###############################################################################

def lua_kind(value:Any) -> str:
	""" Name the kind of a value the way Lua's own type() would. """
	if value is None: return "nil"
	if isinstance(value, bool): return "boolean"
	if isinstance(value, (int, float)): return "number"
	if isinstance(value, (str, bytes)): return "string"
	return lupa.lua_type(value) or "userdata"

def _integer_range(bits:int) -> tuple[int, int]:
	return -(1 << (bits-1)), (1 << (bits-1)) - 1

def make_getter(attribute:str, kind:FieldKind) -> Callable[[Any], Any]:
	if kind is FieldKind.BOOLEAN:
		return lambda native: bool(getattr(native, attribute))
	elif kind is FieldKind.INT32 or kind is FieldKind.INT64:
		return lambda native: int(getattr(native, attribute))
	elif kind is FieldKind.STRING:
		return lambda native: str(getattr(native, attribute))
	else:
		assert_never(kind)

_REFUSED = object()

def _acceptor(kind:FieldKind) -> Callable[[Any], Any]:
	"""
	Returns a function from an incoming Lua value to the Python value to store,
	or to _REFUSED if the value's kind does not agree with the field's.
	"""
	if kind is FieldKind.BOOLEAN:
		return lambda value: value if type(value) is bool else _REFUSED
	elif kind is FieldKind.INT32 or kind is FieldKind.INT64:
		low, high = _integer_range(kind.bits)
		def accept_integer(value):
			# Lua 5.4 will happily hand over 3.0 where 3 was meant.
			if type(value) is float and value.is_integer(): value = int(value)
			if type(value) is int and low <= value <= high: return value
			return _REFUSED
		return accept_integer
	elif kind is FieldKind.STRING:
		def accept_string(value):
			if isinstance(value, str): return value
			if isinstance(value, bytes): return value.decode("utf-8", "surrogateescape")
			return _REFUSED
		return accept_string
	else:
		assert_never(kind)

def _describe(value:Any, kind:FieldKind) -> str:
	if kind.bits and type(value) in (int, float):
		if type(value) is float and not value.is_integer():
			return "number %r (no integer representation)" % value
		return "number %r (out of %d-bit range)" % (value, kind.bits)
	return lua_kind(value)

def make_setter(type_name:str, member:str, attribute:str, kind:FieldKind) -> Callable[[Any, Any], None]:
	accept = _acceptor(kind)
	def setter(native, value):
		converted = accept(value)
		if converted is _REFUSED:
			raise TypeMismatchError(type_name, member, kind.expected(), _describe(value, kind))
		setattr(native, attribute, converted)
	return setter
