"""
The per-type table of exposed members, with inheritance done by explicit composition.

A descriptor lists other descriptors as its bases. Lookup tries the local table,
then walks the bases in the order given, depth-first, and takes the first hit.
So a local member shadows anything a base offers under the same name.
"""
from typing import Iterator, Optional, Sequence
from .diagnostics import DuplicateMemberError, DescriptorSealedError
from .member import Member

class TypeDescriptor:
	"""
	Name, bases, and members of one type as scripts will see it.
	The bases are consulted, not owned.
	Once installed into a runtime, a descriptor is sealed along with all of its bases:
	dispatch only ever runs against tables that can no longer change.
	"""
	_members: dict[str, Member]

	def __init__(self, type_name:str, bases:Sequence["TypeDescriptor"]=()):
		assert isinstance(type_name, str) and type_name, type_name
		for base in bases: assert isinstance(base, TypeDescriptor), base
		self._type_name = type_name
		self._bases = tuple(bases)
		self._members = {}
		self._sealed = False

	def __repr__(self): return "<%s %s>" % (type(self).__name__, self._type_name)

	@property
	def type_name(self) -> str: return self._type_name

	@property
	def bases(self) -> tuple["TypeDescriptor", ...]: return self._bases

	def has_bases(self) -> bool: return bool(self._bases)

	@property
	def is_sealed(self) -> bool: return self._sealed

	def __contains__(self, name:str) -> bool:
		""" Local membership only; the bases are not consulted. """
		return name in self._members

	def register_member(self, name:str, member:Member):
		if self._sealed:
			raise DescriptorSealedError(self._type_name, name)
		if name in self._members:
			raise DuplicateMemberError(self._type_name, name)
		self._members[name] = member

	def seal(self):
		for descriptor in self._lineage():
			descriptor._sealed = True

	def find_named_member(self, name:str) -> Optional[Member]:
		for descriptor in self._lineage():
			member = descriptor._members.get(name)
			if member is not None:
				return member
		return None

	def _lineage(self) -> Iterator["TypeDescriptor"]:
		"""
		Self, then the bases depth-first in registration order.
		Each descriptor comes up once, even in a diamond or a (misconfigured) cycle.
		"""
		visited = set()
		stack = [self]
		while stack:
			descriptor = stack.pop()
			if id(descriptor) in visited: continue
			visited.add(id(descriptor))
			yield descriptor
			stack.extend(reversed(descriptor._bases))
