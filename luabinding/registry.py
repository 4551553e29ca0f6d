"""
A TypeRegistry describes one native Python class to the Lua runtime.
It also knows how to install that description, make instances, and see them off.

The life of an instance comes in explicit phases:

	1. allocate: the runtime makes a handle, and with it an empty block tagged with the type name;
	2. construct: the native class is instantiated into the block;
	3. finalize: when the runtime collects the handle, the destructor runs in place.

The block itself always stays with the runtime. Only the runtime lets go of it.
"""
from typing import Any, Callable, Optional, Sequence, Union, assert_never
from .context import RuntimeContext
from .descriptor import TypeDescriptor
from .diagnostics import (
	DuplicateMemberError, DescriptorCollisionError, DescriptorSealedError,
	MissingMemberError, MethodAssignmentError, InvalidHandleError,
)
from .marshaling import FieldKind, field_kind, make_getter, make_setter, lua_kind
from .member import Member, Method, FieldAccessor
from .values import NativeFunction, BoundMethod, FreeFunction, Constructor

CONSTRUCTOR = "Create"

class NativeBlock:
	""" The runtime-owned payload of one handle: room for exactly one native instance, and a tag. """
	__slots__ = ("tag", "native", "constructed", "finalized")

	def __init__(self, tag:str):
		self.tag = tag
		self.native = None
		self.constructed = False
		self.finalized = False

	def __repr__(self):
		state = "finalized" if self.finalized else "live" if self.constructed else "raw"
		return "<%s block, %s>" % (self.tag, state)

def _default_destructor(native:Any):
	""" Native objects that hold resources say so with a close() method. """
	close = getattr(native, "close", None)
	if callable(close): close()

class TypeRegistry(TypeDescriptor):
	"""
	The concrete descriptor for one native class, plus everything needed to put it before a script.
	Register members any number of times, then install into a runtime context exactly once per context.
	"""
	_free_functions: dict[str, NativeFunction]

	def __init__(
		self,
		native_type:type,
		type_name:Optional[str]=None,
		bases:Sequence[TypeDescriptor]=(),
		*,
		destructor:Optional[Callable[[Any], None]]=None,
	):
		assert isinstance(native_type, type), native_type
		super().__init__(type_name or native_type.__name__, bases)
		self._native_type = native_type
		self._destructor = destructor or _default_destructor
		self._free_functions = {}

	@property
	def native_type(self) -> type: return self._native_type

	# Registration

	def register_method(self, name:str, function:NativeFunction):
		assert callable(function), function
		self.register_member(name, Method(name, function))

	def register_field(self, name:str, attribute:Optional[str]=None, kind:Union[FieldKind, type, None]=None):
		"""
		Expose native_type.<attribute> as the script property <name>.
		The field's kind comes from `kind` if given, or else from the class annotations.
		"""
		attribute = attribute or name
		kind = field_kind(self._native_type, attribute, kind)
		getter = make_getter(attribute, kind)
		setter = make_setter(self.type_name, name, attribute, kind)
		self.register_member(name, FieldAccessor(name, attribute, kind, getter, setter))

	def register_free_function(self, name:str, function:NativeFunction):
		assert callable(function), function
		if self.is_sealed:
			raise DescriptorSealedError(self.type_name, name)
		if name == CONSTRUCTOR or name in self._free_functions:
			raise DuplicateMemberError(self.type_name, name)
		self._free_functions[name] = function

	def free_function_names(self) -> tuple[str, ...]:
		return tuple(self._free_functions)

	# Installation

	def generate_bindings(self, context:RuntimeContext):
		"""
		Install this type into the context: the dispatch hooks on a fresh metatable,
		then a global namespace holding the free functions and the Create entry point.
		"""
		def lookup(block, key): return self.lookup(context, block, key)
		def assign(block, key, value): self.assign(context, block, key, value)
		def finalize(block): self.finalize(context, block)

		if not context.define_type(self, lookup, assign, finalize):
			raise DescriptorCollisionError(self.type_name)
		self.seal()
		namespace = {
			name: FreeFunction(context, self, name, function)
			for name, function in self._free_functions.items()
		}
		namespace[CONSTRUCTOR] = Constructor(context, self)
		context.publish(self.type_name, namespace)
		context.report.info("Installed", self.type_name, "with", len(namespace)-1, "free function(s)")

	# Dispatch: these run inside the runtime, on behalf of a script.

	def native_of(self, block:Any) -> Any:
		""" Check a block's tag, as luaL_checkudata would, and that it holds a live instance. """
		if not isinstance(block, NativeBlock):
			raise InvalidHandleError("%s expected, got %s" % (self.type_name, lua_kind(block)))
		if block.tag != self.type_name:
			raise InvalidHandleError("%s expected, got %s" % (self.type_name, block.tag))
		if block.finalized:
			raise InvalidHandleError("this %s has already been finalized" % self.type_name)
		if not block.constructed:
			raise InvalidHandleError("this %s was never constructed" % self.type_name)
		return block.native

	def _member(self, key:Any) -> Member:
		member = self.find_named_member(key) if isinstance(key, str) else None
		if member is None:
			raise MissingMemberError(self.type_name, key)
		return member

	def lookup(self, context:RuntimeContext, block:Any, key:Any) -> Any:
		native = self.native_of(block)
		member = self._member(key)
		if isinstance(member, Method):
			return BoundMethod(context, self, member)
		elif isinstance(member, FieldAccessor):
			return member.getter(native)
		else:
			assert_never(member)

	def assign(self, context:RuntimeContext, block:Any, key:Any, value:Any):
		native = self.native_of(block)
		member = self._member(key)
		if isinstance(member, Method):
			raise MethodAssignmentError(self.type_name, key)
		elif isinstance(member, FieldAccessor):
			member.setter(native, value)
		else:
			assert_never(member)

	def finalize(self, context:RuntimeContext, block:Any):
		"""
		Run the destructor in place. The block stays with the runtime.
		The collector cannot take an exception, so trouble is written into the report instead.
		"""
		if not isinstance(block, NativeBlock) or block.tag != self.type_name:
			context.report.stray_finalizer(self.type_name, block)
			return
		if block.finalized:
			return
		context.forget(block)
		block.finalized = True
		if not block.constructed:
			return
		native, block.native = block.native, None
		try:
			self._destructor(native)
		except Exception as ex:
			context.report.finalizer_failed(self.type_name, ex)
		else:
			context.report.info("Finalized", block)

	# Allocation

	def construct(self, context:RuntimeContext, args:Sequence[Any]=(), kwargs:Optional[dict[str, Any]]=None) -> tuple[Any, Any]:
		""" Allocate a handle in the runtime, then construct the native instance in its block. """
		block = NativeBlock(self.type_name)
		handle = context.allocate_handle(self, block)
		block.native = self._native_type(*args, **(kwargs or {}))
		block.constructed = True
		context.report.info("Allocated", block)
		return handle, block.native

	def allocate(self, context:RuntimeContext, *args, **kwargs) -> Any:
		"""
		Make an instance owned by the runtime. The handle is left on the context's value stack;
		the native instance comes back for local inspection, but the runtime owns it now.
		"""
		handle, native = self.construct(context, args, kwargs)
		context.push(handle)
		return native
