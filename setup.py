import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

with open('VERSION', 'r') as fh:
    VERSION = fh.read().strip()

setuptools.setup(
    name="cachysetup",
    version=VERSION,
    description="CachyOS post-install setup - idempotent and resumable",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/arg9244/cachy-install",
    packages=setuptools.find_namespace_packages(include=['cachysetup', 'cachysetup.*']),
    classifiers=[
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.11',
    install_requires=['pydantic>=2'],
    extras_require={
        'test': ['pytest'],
        'journald': ['systemd-python'],
    },
    entry_points={
        'console_scripts': ['cachysetup=cachysetup:run_as_a_module'],
    },
)
