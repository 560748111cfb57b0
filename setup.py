"""
Packaging for gprsmonitor. Install with `pip install -e .[test]` and run the tests with `pytest`.
"""

from setuptools import setup

setup(
    name='gprsmonitor',
    version='0.0.1',
    description='Polls the telemetry of remote modems over persistent TCP sessions.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['gprsmonitor', 'gprsmonitor.conduit', 'gprsmonitor.config', 'gprsmonitor.connector',
              'gprsmonitor.monitor', 'gprsmonitor.protocol', 'gprsmonitor.support'],
    package_data={'gprsmonitor.config': ['*.cfg']},
    python_requires='>=3.6',
    install_requires=[
        'configobj',
        'requests',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest', 'timeout-decorator'],
    },
    entry_points={
        'console_scripts': ['gprsmonitor = gprsmonitor.main:main'],
    },
    zip_safe=False,
)
