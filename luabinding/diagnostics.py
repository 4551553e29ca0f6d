"""
Everything that can go wrong, and the means to say so.

The exceptions split along the moment they happen.
Registration-time trouble is raised straight at the native caller, before any script runs.
Dispatch trouble is raised from inside a running script, so Lua code may `pcall` it if it cares to;
if the script does not catch it, it reaches the native caller with its own type intact.
"""
import re, sys
from traceback import TracebackException
from typing import Any, Optional, Sequence

class BindingError(Exception):
	""" Root of everything this package raises on purpose. """

###############################################################################

class RegistrationError(BindingError):
	""" Something is wrong with how a type was described to the runtime. """

class DuplicateMemberError(RegistrationError):
	def __init__(self, type_name:str, member:str):
		super().__init__("Type '%s' already has a member called '%s'."%(type_name, member))
		self.type_name, self.member = type_name, member

class DescriptorCollisionError(RegistrationError):
	def __init__(self, type_name:str):
		super().__init__("A type called '%s' is already installed in this runtime."%type_name)
		self.type_name = type_name

class UnsupportedFieldTypeError(RegistrationError):
	def __init__(self, type_name:str, attribute:str, annotation:Any):
		if annotation is None:
			text = "Field '%s.%s' has no type annotation to marshal by."%(type_name, attribute)
		else:
			text = "Field '%s.%s' is declared %r, which has no marshaling rule."%(type_name, attribute, annotation)
		super().__init__(text)
		self.type_name, self.attribute, self.annotation = type_name, attribute, annotation

class DescriptorSealedError(RegistrationError):
	def __init__(self, type_name:str, member:str):
		super().__init__("Type '%s' is installed; it is too late to add '%s'."%(type_name, member))
		self.type_name, self.member = type_name, member

class NotInstalledError(RegistrationError):
	def __init__(self, type_name:str):
		super().__init__("Type '%s' must be installed before it can be allocated."%type_name)
		self.type_name = type_name

###############################################################################

# Lua reports a position as the chunk name, a colon, and the line number.
_POSITION = re.compile(r'(?:\[string "[^"]*"\]|<[^>:]*>):(\d+):')

class ScriptExecutionError(BindingError):
	"""
	A compile or run-time fault while running script text.
	The first argument is the diagnostic the runtime reported.
	"""
	phase = "runtime"
	source: Optional[str] = None

	def __init__(self, diagnostic:str, *, phase:Optional[str]=None, source:Optional[str]=None):
		super().__init__(diagnostic)
		if phase is not None: self.phase = phase
		self.source = source

	@property
	def diagnostic(self) -> str: return self.args[0]

	def headline(self) -> str:
		""" The runtime's message without any stack traceback it tacked on. """
		lines = str(self.diagnostic).splitlines()
		return lines[0] if lines else ""

	@property
	def line(self) -> Optional[int]:
		found = _POSITION.search(self.headline())
		return int(found.group(1)) if found else None

	def illustrate(self) -> str:
		""" Quote the offending line of script, when both the line and the script are known. """
		row = self.line
		if row is None or self.source is None:
			return ""
		lines = self.source.splitlines()
		if not 0 < row <= len(lines):
			return ""
		return '% 6d | %s' % (row, lines[row-1])

class DispatchError(ScriptExecutionError):
	""" Raised by the installed hooks while a script is running. """

class MissingMemberError(DispatchError):
	def __init__(self, type_name:str, member:Any):
		super().__init__("failed to find key '%s' on type '%s'"%(member, type_name))
		self.type_name, self.member = type_name, member

class TypeMismatchError(DispatchError):
	def __init__(self, type_name:str, member:str, expected:str, got:str):
		super().__init__("cannot assign %s to field '%s.%s' (%s expected)"%(got, type_name, member, expected))
		self.type_name, self.member = type_name, member
		self.expected, self.got = expected, got

class MethodAssignmentError(DispatchError):
	def __init__(self, type_name:str, member:str):
		super().__init__("cannot assign to a method ('%s.%s')"%(type_name, member))
		self.type_name, self.member = type_name, member

class InvalidHandleError(DispatchError):
	pass

class ArgumentError(DispatchError):
	pass

###############################################################################

class StackUnderflowError(BindingError):
	""" Something asked for the most recent value, but nothing has produced one. """

class ContextClosedError(BindingError):
	""" The runtime context has been torn down. """

###############################################################################

class Report:
	"""
	Narrates what the binding layer does when asked to be verbose,
	and collects the issues worth complaining about later.
	"""
	_issues : list["Pic"]

	def __init__(self, *, verbose:int=0):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)

	@property
	def issues(self) -> tuple["Pic", ...]: return tuple(self._issues)

	def issue(self, it:"Pic"):
		self._issues.append(it)

	def reset(self):
		self._issues.clear()

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		""" Emit all the issues to the console. """
		_bemoan(self._issues)

	def assert_no_issues(self, message):
		if self._issues:
			self.complain_to_console()
			raise AssertionError(message)

	# Methods the command-line driver calls:

	def no_such_file(self, path):
		self.issue(Pic("I see no file called %s"%path, []))

	def broken_file(self, path, ex:OSError):
		self.issue(Pic("Something went pear-shaped while trying to read %s"%path, [], [str(ex)]))

	def script_fault(self, origin:str, ex:ScriptExecutionError):
		intro = "The %s fault in %s:" % (ex.phase, origin)
		illustration = ex.illustrate()
		self.issue(Pic(intro, [illustration] if illustration else [], [ex.headline()]))

	# Methods the finalizer calls. The collector cannot take an exception, so these get written down instead.

	def finalizer_failed(self, type_name:str, ex:BaseException):
		intro = "The finalizer for a %s raised an exception. The collector carried on regardless."%type_name
		text = ''.join(TracebackException.from_exception(ex).format())
		self.issue(Pic(intro, [], [text]))

	def stray_finalizer(self, type_name:str, block:Any):
		intro = "The finalizer for %s was handed something that is not one of its objects."%type_name
		self.issue(Pic(intro, [], [repr(block)]))

class Pic:
	def __init__(self, intro:str, quotes:Sequence[str], footer:Sequence[str]=()):
		self._intro, self._quotes, self._footer = intro, list(quotes), footer
	def as_text(self):
		lines = [self._intro]
		lines.extend(self._quotes)
		lines.extend(self._footer)
		return '\n'.join(lines)

def _bemoan(issues):
	""" Emit all the issues to the console. """
	if issues:
		print("*"*60, file=sys.stderr)
	for i in issues:
		print("  -"*20, file=sys.stderr)
		print(i.as_text(), file=sys.stderr)
	sys.stderr.flush()
