"""
Packaging script for PyPI.
"""
import setuptools

setuptools.setup(
	name='lua-member-binding',
	version='0.1.0',
	packages=['luabinding', "luabinding.adapters", ],
	entry_points={
		'console_scripts': ["luabinding = luabinding.cmdline:main"],
	},
	license='MIT',
	description='Expose Python classes to embedded Lua scripts, with methods, fields, and garbage-collected lifetimes',
	long_description=open('README.md').read(),
	long_description_content_type="text/markdown",
	classifiers=[
		"Programming Language :: Python :: 3.11",
		"Programming Language :: Lua",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Development Status :: 3 - Alpha",
		"Intended Audience :: Developers",
		"Topic :: Software Development :: Interpreters",
		"Topic :: Software Development :: Libraries",
		"Environment :: Console",
    ],
	python_requires='>=3.11',
	install_requires=[
		"lupa>=2.0",
	],
	extras_require={
		'test': ["pytest"],
	},
)
