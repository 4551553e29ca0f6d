"""
A small native type for scripts to poke at. It exists to exercise the binding layer,
and the command-line driver installs it so there is something to talk to.
"""
from ..marshaling import Int32
from ..registry import TypeRegistry
from ..values import CallFrame

class ElementNode:
	pointless_bool: bool
	pointless_string: str
	depth: Int32

	def __init__(self):
		self.pointless_bool = False
		self.pointless_string = ""
		self.depth = 0

	def say_hello_world(self):
		print("Hello from Python!")

	def add(self, lhs:int, rhs:int) -> int:
		return lhs + rhs

	def set_pointless_bool(self, value:bool):
		self.pointless_bool = value

def _say_hello(frame:CallFrame):
	frame.check_self().say_hello_world()
	return 0

def _set_pointless_bool(frame:CallFrame):
	frame.check_self().set_pointless_bool(frame.to_boolean(1))
	return 0

def _add(frame:CallFrame):
	node = frame.check_self()
	frame.push(node.add(frame.check_integer(1), frame.check_integer(2)))
	return 1

def _say_something(frame:CallFrame):
	print("Hello from Python (really cool edition)!!!")
	return 0

def element_node_registry(type_name:str="ElementNode") -> TypeRegistry:
	""" A fresh registry each call: registries are sealed once installed. """
	registry = TypeRegistry(ElementNode, type_name)
	registry.register_method("SayHello", _say_hello)
	registry.register_method("SetPointlessBool", _set_pointless_bool)
	registry.register_method("Add", _add)
	registry.register_free_function("SaySomething", _say_something)
	registry.register_field("PointlessBool", "pointless_bool")
	registry.register_field("PointlessString", "pointless_string")
	registry.register_field("Depth", "depth")
	return registry

# A quick tour of the features, for the --demo flag. Expects the global `node`.
DEMONSTRATION = [
	"ElementNode.SaySomething()",
	"local myNode = ElementNode.Create() myNode:SayHello()",
	"print(node.PointlessBool)",
] + ["node:SetPointlessBool(not node.PointlessBool) print(node.PointlessBool)"] * 5 + [
	"for i = 1, 10 do print(node:Add(i, 5)) end",
]
