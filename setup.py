from setuptools import setup, find_packages
import re

VERSIONFILE="asyrange/_version.py"
verstrline = open(VERSIONFILE, "rt").read()
VSRE = r"^__version__ = ['\"]([^'\"]*)['\"]"
mo = re.search(VSRE, verstrline, re.M)
if mo:
	verstr = mo.group(1)
else:
	raise RuntimeError("Unable to find version string in %s." % (VERSIONFILE,))


setup(
	# Application name:
	name="asyrange",

	# Version number (initial):
	version=verstr,

	# Application author details:
	author="Tamas Jos",
	author_email="info@skelsecprojects.com",

	# Packages
	packages=find_packages(exclude=["asyrange.test"]),

	# Include additional files into the package
	include_package_data=True,


	# Details
	url="https://github.com/skelsec/asyrange",

	zip_safe = True,
	#
	# license="LICENSE.txt",
	description="Asyncio static file server with HTTP byte-range support",
	long_description="",

	# long_description=open("README.txt").read(),
	python_requires='>=3.7',
	classifiers=[
		"Programming Language :: Python :: 3.7",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
	],
	install_requires=[
		'cryptography',
		'h11>=0.14.0',
	],
	extras_require={
		'test': [
			'pytest',
		],
	},
	entry_points={
		'console_scripts': [
			'asyrange-fileserver = asyrange.examples.fileserver:main',
		],
	}
)
