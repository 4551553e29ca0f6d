"""
Expose Python classes to embedded Lua scripts: methods, fields, and a garbage-collected life.
"""
__version__ = "0.1.0"

from .diagnostics import (
	BindingError, RegistrationError, ScriptExecutionError, DispatchError,
	DuplicateMemberError, DescriptorCollisionError, UnsupportedFieldTypeError, DescriptorSealedError,
	NotInstalledError, MissingMemberError, TypeMismatchError, MethodAssignmentError,
	InvalidHandleError, ArgumentError, StackUnderflowError, ContextClosedError, Report,
)
from .marshaling import FieldKind, Int32, Int64
from .member import Method, FieldAccessor
from .descriptor import TypeDescriptor
from .values import CallFrame
from .registry import TypeRegistry, NativeBlock
from .manager import RuntimeManager
