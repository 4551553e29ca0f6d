"""
The callable values a script meets when it reaches into a native type,
and the call-frame convention by which native functions take their arguments.

A native function takes one CallFrame. It reads its arguments out of the frame,
pushes its results onto the frame, and returns how many of the pushed values are results:

	def add(frame):
		node = frame.check_self()
		frame.push(node.add(frame.check_integer(1), frame.check_integer(2)))
		return 1

Arguments count from zero. When a script calls a method as obj:Name(...),
argument zero is the handle for obj.
"""
from typing import Any, Callable, Optional, Sequence, TYPE_CHECKING
from .diagnostics import ArgumentError, DispatchError
from .marshaling import lua_kind
from .member import Method

if TYPE_CHECKING:
	from .context import RuntimeContext
	from .registry import TypeRegistry

NativeFunction = Callable[["CallFrame"], Optional[int]]

class CallFrame:
	_pushed: list

	def __init__(self, context:"RuntimeContext", owner:"TypeRegistry", name:str, args:Sequence[Any]):
		self.context = context
		self.owner = owner
		self.name = name
		self._args = tuple(args)
		self._pushed = []

	def __len__(self): return len(self._args)

	def argument(self, index:int) -> Any:
		""" The argument as the runtime handed it over; None (nil) past the end. """
		return self._args[index] if 0 <= index < len(self._args) else None

	def _bad(self, index:int, message:str) -> ArgumentError:
		return ArgumentError("bad argument #%d to '%s' (%s)" % (index+1, self.name, message))

	def _got(self, index:int) -> str:
		return lua_kind(self._args[index]) if index < len(self._args) else "no value"

	def check_native(self, index:int, registry:Optional["TypeRegistry"]=None) -> Any:
		"""
		The native instance behind a handle argument.
		By default, it must belong to the type that dispatched this call.
		"""
		registry = registry or self.owner
		block = self.context.block_of(self.argument(index))
		if block is None:
			raise self._bad(index, "%s expected, got %s" % (registry.type_name, self._got(index)))
		return registry.native_of(block)

	def check_self(self) -> Any:
		return self.check_native(0)

	def check_boolean(self, index:int) -> bool:
		value = self.argument(index)
		if type(value) is bool: return value
		raise self._bad(index, "boolean expected, got %s" % self._got(index))

	def check_integer(self, index:int) -> int:
		value = self.argument(index)
		if type(value) is int: return value
		if type(value) is float:
			if value.is_integer(): return int(value)
			raise self._bad(index, "number has no integer representation")
		raise self._bad(index, "number expected, got %s" % self._got(index))

	def check_number(self, index:int) -> float:
		value = self.argument(index)
		if type(value) in (int, float): return value
		raise self._bad(index, "number expected, got %s" % self._got(index))

	def check_string(self, index:int) -> str:
		value = self.argument(index)
		if isinstance(value, str): return value
		if isinstance(value, bytes): return value.decode("utf-8", "surrogateescape")
		if type(value) in (int, float): return str(value)
		raise self._bad(index, "string expected, got %s" % self._got(index))

	def to_boolean(self, index:int) -> bool:
		""" Lua truth: everything but nil and false. """
		value = self.argument(index)
		return value is not None and value is not False

	def optional(self, index:int, default:Any=None) -> Any:
		value = self.argument(index)
		return default if value is None else value

	def push(self, value:Any):
		self._pushed.append(value)

	def returned(self, count:Optional[int]) -> Any:
		"""
		Shape the last `count` pushed values the way a Python call must return them to Lua:
		nothing, one value, or a tuple to be unpacked into several.
		A function that returns None has produced nothing.
		"""
		count = count or 0
		if not 0 <= count <= len(self._pushed):
			raise DispatchError("'%s' claims %r results but pushed %d" % (self.name, count, len(self._pushed)))
		if count == 0: return None
		if count == 1: return self._pushed[-1]
		return tuple(self._pushed[-count:])

###############################################################################

class BoundMethod:
	""" What a script gets back when it looks up a method. Usually called as obj:Name(...) """
	def __init__(self, context:"RuntimeContext", owner:"TypeRegistry", method:Method):
		self._context = context
		self._owner = owner
		self._method = method

	def __repr__(self): return "<method %s.%s>" % (self._owner.type_name, self._method.name)

	def __call__(self, *args):
		frame = CallFrame(self._context, self._owner, self._method.name, args)
		return frame.returned(self._method.function(frame))

class FreeFunction:
	""" One entry of a type's namespace table. No instance required. """
	def __init__(self, context:"RuntimeContext", owner:"TypeRegistry", name:str, function:NativeFunction):
		self._context = context
		self._owner = owner
		self._name = name
		self._function = function

	def __repr__(self): return "<function %s.%s>" % (self._owner.type_name, self._name)

	def __call__(self, *args):
		frame = CallFrame(self._context, self._owner, self._name, args)
		return frame.returned(self._function(frame))

class Constructor:
	"""
	The Create entry of a type's namespace: a fresh, default-constructed instance.
	Like any Lua function, it ignores arguments it has no use for.
	"""
	def __init__(self, context:"RuntimeContext", owner:"TypeRegistry"):
		self._context = context
		self._owner = owner

	def __repr__(self): return "<constructor %s.Create>" % self._owner.type_name

	def __call__(self, *ignored):
		handle, native = self._owner.construct(self._context)
		return handle
