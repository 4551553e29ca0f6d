"""
One Lua interpreter state, and the little bit of Lua it takes to hang native types off of it.

Each installed type gets a metatable in the Lua registry under its name, the way
luaL_newmetatable would do it, so a second type of the same name cannot sneak in.

A handle is an empty table carrying its type's metatable. Every read and write on it
therefore lands in the type's dispatch hooks. The native payload (a NativeBlock) is
associated with the handle through a weak-keyed table, so the block lives exactly as long
as the runtime keeps the handle alive, and is still reachable when the handle's finalizer runs.
"""
from typing import Any, Callable, Optional, TYPE_CHECKING
from lupa import LuaRuntime, LuaError, LuaSyntaxError
from .diagnostics import (
	Report, BindingError, ScriptExecutionError,
	NotInstalledError, StackUnderflowError, ContextClosedError,
)

if TYPE_CHECKING:
	from .registry import TypeRegistry, NativeBlock

_GLUE = """
local armed = true
local registry = debug.getregistry()
local blocks = setmetatable({}, {__mode = "k"})
local glue = {}

function glue.define(name, lookup, assign, finalize)
	if registry[name] ~= nil then return false end
	registry[name] = {
		__name = name,
		__index = function(handle, key) return lookup(blocks[handle], key) end,
		__newindex = function(handle, key, value) assign(blocks[handle], key, value) end,
		__gc = function(handle)
			local block = blocks[handle]
			if armed and block ~= nil then finalize(block) end
		end,
	}
	return true
end

function glue.allocate(name, block)
	local handle = setmetatable({}, registry[name])
	blocks[handle] = block
	return handle
end

function glue.block_of(value)
	if type(value) == "table" then return blocks[value] end
	return nil
end

function glue.disarm()
	armed = false
end

return glue
"""

class RuntimeContext:
	"""
	The embedded runtime's persistent state: the Lua interpreter,
	the types installed into it, the native blocks it presently owns,
	and a value stack holding whatever was most recently produced.
	"""
	_types: dict[str, "TypeRegistry"]
	_live: set["NativeBlock"]
	_stack: list[Any]

	def __init__(self, report:Optional[Report]=None, *, encoding:Optional[str]="UTF-8", max_memory:Optional[int]=None):
		self.report = report or Report()
		options = dict(unpack_returned_tuples=True, encoding=encoding)
		if max_memory is not None: options["max_memory"] = max_memory
		self._lua = LuaRuntime(**options)
		glue = self._lua.execute(_GLUE)
		self._define = glue["define"]
		self._allocate = glue["allocate"]
		self._block_of = glue["block_of"]
		self._disarm = glue["disarm"]
		self._types = {}
		self._live = set()
		self._stack = []
		self.report.info("Runtime context is up.")

	@property
	def is_closed(self) -> bool: return self._lua is None

	def _check_open(self):
		if self._lua is None:
			raise ContextClosedError("This runtime context has been closed.")

	@property
	def globals(self):
		self._check_open()
		return self._lua.globals()

	def installed(self, type_name:str) -> Optional["TypeRegistry"]:
		return self._types.get(type_name)

	# Type installation and the handle life-cycle

	def define_type(self, registry:"TypeRegistry", lookup:Callable, assign:Callable, finalize:Callable) -> bool:
		""" False means some type of that name is already installed. """
		self._check_open()
		if not self._define(registry.type_name, lookup, assign, finalize):
			return False
		self._types[registry.type_name] = registry
		return True

	def publish(self, name:str, namespace:dict[str, Any]):
		self._check_open()
		self._lua.globals()[name] = self._lua.table_from(namespace)

	def allocate_handle(self, registry:"TypeRegistry", block:"NativeBlock"):
		"""
		Make a new handle in runtime-owned memory and associate the block with it.
		From here on, the runtime decides when the block's native instance goes away.
		"""
		self._check_open()
		if self._types.get(registry.type_name) is not registry:
			raise NotInstalledError(registry.type_name)
		handle = self._allocate(registry.type_name, block)
		self._live.add(block)
		return handle

	def block_of(self, value:Any) -> Optional["NativeBlock"]:
		""" The block behind a handle, or None if the value is no handle at all. """
		self._check_open()
		return self._block_of(value)

	def forget(self, block:"NativeBlock"):
		self._live.discard(block)

	@property
	def live_count(self) -> int: return len(self._live)

	def collect_garbage(self):
		"""
		Full collection. Pending finalizers run before this returns.
		The second pass reclaims whatever the first pass's finalizers let go of.
		"""
		self._check_open()
		self._lua.execute("collectgarbage('collect') collectgarbage('collect')")

	# Running script text

	def run(self, text:str) -> Any:
		"""
		Compile and run a chunk of script. Whatever the chunk returns is pushed on the value stack,
		and also handed back in the form lupa gives it: None, one value, or a tuple.
		"""
		self._check_open()
		try:
			results = self._lua.execute(text)
		except BindingError as ex:
			if isinstance(ex, ScriptExecutionError) and ex.source is None: ex.source = text
			raise
		except LuaSyntaxError as ex:
			raise ScriptExecutionError(str(ex), phase="compile", source=text) from ex
		except LuaError as ex:
			raise ScriptExecutionError(str(ex), phase="runtime", source=text) from ex
		except Exception as ex:
			# Something native blew up underneath the script.
			raise ScriptExecutionError("%s: %s" % (type(ex).__name__, ex), source=text) from ex
		if isinstance(results, tuple):
			self._stack.extend(results)
		elif results is not None:
			self._stack.append(results)
		return results

	# The value stack

	def push(self, value:Any):
		self._stack.append(value)

	def pop(self) -> Any:
		if not self._stack:
			raise StackUnderflowError("Nothing has produced a value to take.")
		return self._stack.pop()

	def peek(self) -> Any:
		if not self._stack:
			raise StackUnderflowError("Nothing has produced a value to look at.")
		return self._stack[-1]

	@property
	def depth(self) -> int: return len(self._stack)

	def clear_stack(self):
		self._stack.clear()

	# Tear-down

	def close(self):
		"""
		Run one last collection so that unreachable objects finalize normally,
		then stop the runtime from calling back into Python while it shuts down,
		and finalize whatever native objects are still alive.
		"""
		if self._lua is None:
			return
		self.collect_garbage()
		self._disarm()
		for block in list(self._live):
			self._types[block.tag].finalize(self, block)
		self._live.clear()
		self._stack.clear()
		self._define = self._allocate = self._block_of = self._disarm = None
		self._lua = None
		self.report.info("Runtime context is closed.")
