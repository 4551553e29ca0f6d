import io
import unittest
from unittest import mock

from luabinding.adapters.element_node import ElementNode, element_node_registry
from luabinding.diagnostics import (
	ScriptExecutionError, MissingMemberError, TypeMismatchError, MethodAssignmentError,
	InvalidHandleError, ArgumentError, DescriptorCollisionError, DescriptorSealedError,
	NotInstalledError, StackUnderflowError, ContextClosedError,
)
from luabinding.manager import RuntimeManager
from luabinding.registry import TypeRegistry

class Probe:
	""" Counts its own finalization. """
	finalized = 0

	def close(self): Probe.finalized += 1

class ElementNodeScripts(unittest.TestCase):
	""" A node bound to the global `node`, much as the command line sets it up. """

	def setUp(self):
		self.manager = RuntimeManager()
		self.registry = element_node_registry()
		self.manager.apply_registry(self.registry)
		self.node = self.manager.instantiate(self.registry)
		self.manager.set_global("node")

	def tearDown(self):
		self.manager.close()

	def test_instantiate_hands_back_the_native_object(self):
		self.assertIsInstance(self.node, ElementNode)
		self.assertEqual(0, self.manager.depth)

	def test_add_loop(self):
		results = self.manager.execute("""
			local sums = {}
			for i = 1, 10 do sums[#sums+1] = node:Add(i, 5) end
			return table.unpack(sums)
		""")
		self.assertEqual(tuple(range(6, 16)), results)

	def test_say_something(self):
		with mock.patch("sys.stdout", new_callable=io.StringIO) as out:
			self.manager.execute("ElementNode.SaySomething()")
		self.assertEqual("Hello from Python (really cool edition)!!!\n", out.getvalue())

	def test_create_and_say_hello(self):
		with mock.patch("sys.stdout", new_callable=io.StringIO) as out:
			self.manager.execute("local myNode = ElementNode.Create() myNode:SayHello()")
		self.assertEqual("Hello from Python!\n", out.getvalue())

	def test_bool_round_trip(self):
		self.assertIs(False, self.manager.execute("return node.PointlessBool"))
		for expect in [True, False, True, False, True]:
			with self.subTest(expect=expect):
				got = self.manager.execute("node:SetPointlessBool(not node.PointlessBool) return node.PointlessBool")
				self.assertIs(expect, got)
				self.assertIs(expect, self.node.pointless_bool)

	def test_set_pointless_bool_uses_lua_truth(self):
		self.manager.execute("node:SetPointlessBool(0)")
		self.assertIs(True, self.node.pointless_bool)
		self.manager.execute("node:SetPointlessBool()")
		self.assertIs(False, self.node.pointless_bool)

	def test_field_writes(self):
		self.manager.execute("node.PointlessString = 'grüß dich' node.Depth = 3 node.PointlessBool = true")
		self.assertEqual("grüß dich", self.node.pointless_string)
		self.assertEqual(3, self.node.depth)
		self.assertIs(True, self.node.pointless_bool)
		self.assertEqual(4, self.manager.execute("return node.Depth + 1"))

	def test_native_writes_are_visible(self):
		self.node.pointless_string = "from Python"
		self.assertEqual("from Python", self.manager.execute("return node.PointlessString"))

	def test_type_mismatch_leaves_field_alone(self):
		self.node.depth = 9
		for bogon in ["'seven'", "true", "1.5", "2^31", "nil"]:
			with self.subTest(bogon=bogon):
				with self.assertRaises(TypeMismatchError):
					self.manager.execute("node.Depth = " + bogon)
				self.assertEqual(9, self.node.depth)

	def test_integral_float_is_accepted(self):
		self.manager.execute("node.Depth = 2.0 * 3")
		self.assertEqual(6, self.node.depth)
		self.assertIs(int, type(self.node.depth))

	def test_missing_member(self):
		with self.assertRaises(MissingMemberError) as cm:
			self.manager.execute("return node.Nonexistent")
		self.assertEqual("Nonexistent", cm.exception.member)
		with self.assertRaises(MissingMemberError):
			self.manager.execute("node.Nonexistent = 1")

	def test_method_assignment(self):
		with self.assertRaises(MethodAssignmentError):
			self.manager.execute("node.Add = 5")
		self.assertEqual(3, self.manager.execute("return node:Add(1, 2)"))

	def test_script_can_catch_dispatch_errors(self):
		ok, error = self.manager.execute("return pcall(function() return node.Nonexistent end)")
		self.assertIs(False, ok)
		self.assertIsInstance(error, MissingMemberError)

	def test_bad_self(self):
		with self.assertRaises(ArgumentError) as cm:
			self.manager.execute("node.SayHello(5)")
		self.assertIn("bad argument #1 to 'SayHello'", str(cm.exception))

	def test_bad_argument(self):
		with self.assertRaises(ArgumentError) as cm:
			self.manager.execute("node:Add(1, 'two')")
		self.assertIn("bad argument #3 to 'Add'", str(cm.exception))

	def test_handles_of_another_type_are_refused(self):
		probe = TypeRegistry(Probe)
		self.manager.apply_registry(probe)
		with self.assertRaises(InvalidHandleError):
			self.manager.execute("node.SayHello(Probe.Create())")

	def test_registry_is_sealed(self):
		with self.assertRaises(DescriptorSealedError):
			self.registry.register_method("Late", lambda frame: 0)
		with self.assertRaises(DescriptorSealedError):
			self.registry.register_free_function("Late", lambda frame: 0)

	def test_collision(self):
		with self.assertRaises(DescriptorCollisionError):
			self.manager.apply_registry(element_node_registry())
		with self.assertRaises(DescriptorCollisionError):
			self.manager.apply_registry(self.registry)

	def test_namespace_is_published(self):
		self.assertEqual("table", self.manager.execute("return type(ElementNode)"))
		self.assertEqual("userdata", self.manager.execute("return type(ElementNode.SaySomething)"))
		self.assertIsNone(self.manager.execute("return ElementNode.SayHello"))

	def test_globals(self):
		self.assertIsNotNone(self.manager.get_global("node"))
		self.assertIsNone(self.manager.get_global("nothing_here"))

class StackTests(unittest.TestCase):

	def setUp(self):
		self.manager = RuntimeManager()

	def tearDown(self):
		self.manager.close()

	def test_results_go_on_the_stack(self):
		self.assertEqual((1, 2), self.manager.execute("return 1, 2"))
		self.assertEqual(2, self.manager.depth)
		self.manager.set_global("b")
		self.manager.set_global("a")
		self.assertEqual(0, self.manager.depth)
		self.assertEqual(-1, self.manager.execute("return a - b"))

	def test_nothing_returned(self):
		self.assertIsNone(self.manager.execute("local x = 1"))
		self.assertEqual(0, self.manager.depth)

	def test_underflow(self):
		with self.assertRaises(StackUnderflowError):
			self.manager.set_global("x")
		with self.assertRaises(StackUnderflowError):
			self.manager.pop()

	def test_peek_leaves_the_value(self):
		self.manager.execute("return 'top'")
		self.assertEqual("top", self.manager.context.peek())
		self.assertEqual(1, self.manager.depth)
		self.assertEqual("top", self.manager.pop())
		with self.assertRaises(StackUnderflowError):
			self.manager.context.peek()

	def test_clear(self):
		self.manager.execute("return 1, 2, 3")
		self.manager.clear_stack()
		self.assertEqual(0, self.manager.depth)

class ScriptFaultTests(unittest.TestCase):

	def setUp(self):
		self.manager = RuntimeManager()

	def tearDown(self):
		self.manager.close()

	def test_syntax_error(self):
		with self.assertRaises(ScriptExecutionError) as cm:
			self.manager.execute("this is not lua")
		self.assertEqual("compile", cm.exception.phase)
		self.assertTrue(cm.exception.diagnostic)

	def test_runtime_error(self):
		text = "local x = 1\nerror('boom')\n"
		with self.assertRaises(ScriptExecutionError) as cm:
			self.manager.execute(text)
		self.assertEqual("runtime", cm.exception.phase)
		self.assertIn("boom", cm.exception.headline())
		self.assertEqual(2, cm.exception.line)
		self.assertEqual("     2 | error('boom')", cm.exception.illustrate())

	def test_not_installed(self):
		with self.assertRaises(NotInstalledError):
			self.manager.instantiate(element_node_registry())
		self.assertEqual(0, self.manager.depth)

	def test_memory_cap(self):
		with RuntimeManager(max_memory=1 << 20) as manager:
			with self.assertRaises(ScriptExecutionError):
				manager.execute("local t = {} for i = 1, 1e7 do t[i] = i end")

	def test_separate_managers_do_not_collide(self):
		self.manager.apply_registry(element_node_registry())
		with RuntimeManager() as other:
			other.apply_registry(element_node_registry())
			other.instantiate(other.context.installed("ElementNode"))
			other.set_global("node")
			self.assertEqual(5, other.execute("return node:Add(2, 3)"))

class InheritanceTests(unittest.TestCase):

	def test_base_members_reach_derived_instances(self):
		class Animal:
			name: str
			def __init__(self): self.name = "generic"
		class Dog(Animal):
			def __init__(self):
				super().__init__()
				self.name = "Rex"

		def speak(frame):
			frame.push("...")
			return 1
		def woof(frame):
			frame.push(frame.check_self().name + " says woof")
			return 1
		def sleep(frame):
			frame.push("zzz")
			return 1

		animal = TypeRegistry(Animal)
		animal.register_field("Name", "name")
		animal.register_method("Speak", speak)
		animal.register_method("Sleep", sleep)
		dog = TypeRegistry(Dog, bases=[animal])
		dog.register_method("Speak", woof)

		with RuntimeManager() as manager:
			manager.apply_registry(dog)
			self.assertTrue(animal.is_sealed)
			result = manager.execute("local d = Dog.Create() return d.Name, d:Speak(), d:Sleep()")
			self.assertEqual(("Rex", "Rex says woof", "zzz"), result)

class LifecycleTests(unittest.TestCase):

	def setUp(self):
		Probe.finalized = 0
		self.manager = RuntimeManager()
		self.registry = TypeRegistry(Probe)
		self.manager.apply_registry(self.registry)

	def tearDown(self):
		self.manager.close()

	def test_collector_finalizes_exactly_once(self):
		self.manager.execute("Probe.Create()")
		self.assertEqual(1, self.manager.live_count)
		self.manager.collect_garbage()
		self.assertEqual(1, Probe.finalized)
		self.assertEqual(0, self.manager.live_count)
		self.manager.collect_garbage()
		self.manager.close()
		self.assertEqual(1, Probe.finalized)

	def test_reachable_objects_survive_collection(self):
		self.manager.instantiate(self.registry)
		self.manager.set_global("keeper")
		self.manager.collect_garbage()
		self.assertEqual(0, Probe.finalized)
		self.manager.execute("keeper = nil")
		self.manager.collect_garbage()
		self.assertEqual(1, Probe.finalized)

	def test_close_finalizes_live_objects(self):
		self.manager.instantiate(self.registry)
		self.manager.set_global("keeper")
		self.manager.instantiate(self.registry)  # Left on the stack.
		self.manager.close()
		self.assertEqual(2, Probe.finalized)
		self.manager.close()
		self.assertEqual(2, Probe.finalized)

	def test_closed(self):
		self.manager.close()
		self.assertTrue(self.manager.is_closed)
		with self.assertRaises(ContextClosedError):
			self.manager.execute("return 1")
		with self.assertRaises(ContextClosedError):
			self.manager.apply_registry(TypeRegistry(Probe, "Another"))

	def test_finalizer_trouble_is_reported(self):
		def grumpy(native): raise ValueError("not today")
		registry = TypeRegistry(Probe, "Grumpy", destructor=grumpy)
		self.manager.apply_registry(registry)
		self.manager.execute("Grumpy.Create()")
		self.manager.collect_garbage()
		self.assertEqual(1, len(self.manager.report.issues))
		self.assertEqual(2, self.manager.execute("return 1 + 1"))

if __name__ == '__main__':
	unittest.main()
