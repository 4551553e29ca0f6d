"""
This runs Lua scripts against a runtime with native Python types installed.

{0}

For example:

    luabinding script.lua

will run script.lua with an ElementNode bound to the global `node`, or else try to explain why not.

    luabinding -e "print(node:Add(2, 3))"

runs a snippet directly, and

    luabinding -h

will explain all the arguments.
"""
import sys, argparse
from pathlib import Path

parser = argparse.ArgumentParser(
	prog="luabinding",
	description="Run Lua scripts against native Python types.",
)
parser.add_argument("scripts", nargs="*", help="Lua script files, run in the order given.")
parser.add_argument('-e', "--execute", action="append", default=[], metavar="CODE", help="Run this snippet before any script files. May be repeated.")
parser.add_argument('-d', "--demo", action="store_true", help="Run a short tour of the ElementNode type first.")
parser.add_argument('-g', "--global-name", default="node", help="Global name for the pre-built ElementNode. (Default: node)")
parser.add_argument('-m', "--max-memory", type=int, help="Cap the Lua heap at this many bytes.")
parser.add_argument('-v', "--verbose", action="count", help="Narrate installs, allocations, and finalizations on stderr.")

def run(args):
	from .diagnostics import ScriptExecutionError
	from .manager import RuntimeManager
	from .adapters.element_node import element_node_registry, DEMONSTRATION
	with RuntimeManager(verbose=args.verbose, max_memory=args.max_memory) as manager:
		report = manager.report
		registry = element_node_registry()
		manager.apply_registry(registry)
		manager.instantiate(registry)
		manager.set_global(args.global_name)
		snippets = [("the demonstration", text) for text in DEMONSTRATION] if args.demo else []
		snippets.extend(("snippet #%d"%(i+1), text) for i, text in enumerate(args.execute))
		try:
			for origin, text in snippets:
				manager.execute(text)
				manager.clear_stack()
			for path in args.scripts:
				origin = path
				manager.execute_file(Path.cwd() / path)
				manager.clear_stack()
		except ScriptExecutionError as ex:
			report.script_fault(origin, ex)
		except FileNotFoundError:
			report.no_such_file(origin)
		except OSError as ex:
			report.broken_file(origin, ex)
		if report.sick():
			report.complain_to_console()
			return 1

def main():
	if len(sys.argv) > 1:
		sys.exit(run(parser.parse_args()))
	else:
		print(__doc__.strip().format(parser.format_usage()))
