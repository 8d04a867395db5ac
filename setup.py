# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# SPDX-License-Identifier: MPL-2.0
"""
A setuptools based setup module.
See:
https://packaging.python.org/guides/distributing-packages-using-setuptools/
https://github.com/pypa/sampleproject
"""

# Always prefer setuptools over distutils
from setuptools import setup, find_packages
import os

here = os.path.abspath(os.path.dirname(__file__))

# read the version without importing the package (its dependencies may not be installed yet)
version_info = dict()
with open(os.path.join(here, 'src', 'GridSolverEngine', '__version__.py'), encoding='utf-8') as f:
    exec(f.read(), version_info)

long_description = """# GridSolverEngine

Numerical core of a power grid steady state simulator:

- Newton-Raphson solver with state vector scaling (line search, maximum voltage change)
- DC contingency and sensitivity analysis over a single factorization (Woodbury identity)
- Detection and grouping of the contingencies that split the network
"""

description = 'Newton-Raphson and Woodbury based contingency analysis engine for power systems'

pkgs_to_exclude = ['docs', 'research', 'tests', 'tutorials']

packages = find_packages(where='src', exclude=pkgs_to_exclude)

# ... so we have to do the filtering ourselves
packages2 = list()
for package in packages:
    elms = package.split('.')
    excluded = False
    for exclude in pkgs_to_exclude:
        if exclude in elms:
            excluded = True

    if not excluded:
        packages2.append(package)

dependencies = ['setuptools>=41.0.1',
                "numpy>=1.22",
                "scipy>=1.0.0",
                "networkx>=2.1",
                "pandas>=2.0",
                "numba>=0.60",  # to compile routines natively
                ]

extras_require = {
    'test': ["pytest>=7.2"]
}

setup(
    name='GridSolverEngine',  # Required
    version=version_info['__GridSolverEngine_VERSION__'],  # Required
    license='MPL2',
    description=description,  # Optional
    long_description=long_description,  # Optional
    long_description_content_type='text/markdown',  # Optional (see note above)
    classifiers=[
        'License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)',
        'Programming Language :: Python :: 3.8',
    ],
    keywords='power systems contingency analysis newton-raphson',  # Optional
    packages=packages2,  # Required
    package_dir={'': 'src'},
    include_package_data=True,
    python_requires='>=3.8',
    install_requires=dependencies,
    extras_require=extras_require,
)
