"""
The embedding surface: one manager, one runtime context, for as long as you need it.

	with RuntimeManager() as manager:
		manager.apply_registry(registry)
		node = manager.instantiate(registry)
		manager.set_global("node")
		manager.execute("node:SayHello()")

Values flow through a stack, the way they would through the runtime's own API:
instantiate() and execute() leave what they produce on top, and set_global() takes it off.
"""
from pathlib import Path
from typing import Any, Optional, Union
from .context import RuntimeContext
from .diagnostics import Report, ContextClosedError
from .registry import TypeRegistry

class RuntimeManager:
	def __init__(self, *, verbose:int=0, encoding:Optional[str]="UTF-8", max_memory:Optional[int]=None, report:Optional[Report]=None):
		self.report = report or Report(verbose=verbose)
		self._context = RuntimeContext(self.report, encoding=encoding, max_memory=max_memory)

	def __enter__(self): return self
	def __exit__(self, exc_type, exc_val, exc_tb): self.close()

	@property
	def context(self) -> RuntimeContext:
		if self._context is None:
			raise ContextClosedError("This runtime manager has been closed.")
		return self._context

	@property
	def is_closed(self) -> bool: return self._context is None

	def apply_registry(self, registry:TypeRegistry):
		""" Install a type. Afterwards its description is sealed, and scripts can see its namespace. """
		registry.generate_bindings(self.context)

	def instantiate(self, registry:TypeRegistry, *args, **kwargs) -> Any:
		"""
		Construct a runtime-owned instance. The handle goes on the value stack;
		the native object comes back so the caller may look at it,
		but the runtime's collector decides when it goes away.
		"""
		return registry.allocate(self.context, *args, **kwargs)

	def execute(self, script_text:str) -> Any:
		return self.context.run(script_text)

	def execute_file(self, path:Union[str, Path]) -> Any:
		text = Path(path).read_text(encoding="utf-8")
		self.report.info("Running", path)
		return self.execute(text)

	def set_global(self, name:str):
		""" Bind the most recently produced value to a global name in the script environment. """
		context = self.context
		value = context.pop()
		context.globals[name] = value

	def get_global(self, name:str) -> Any:
		return self.context.globals[name]

	def pop(self) -> Any: return self.context.pop()
	def clear_stack(self): self.context.clear_stack()

	@property
	def depth(self) -> int: return self.context.depth

	@property
	def live_count(self) -> int: return self.context.live_count

	def collect_garbage(self): self.context.collect_garbage()

	def close(self):
		""" Tear down the runtime. Native objects it still holds are finalized on the way out. """
		if self._context is not None:
			context, self._context = self._context, None
			context.close()
