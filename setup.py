from setuptools import find_packages, setup

VERSION = '1.0.0'

setup(
    name='congress_api_wrapper',
    packages=find_packages(include=['congress_api_wrapper']),
    version=VERSION,
    description='A python client for the Congress LoRa backend REST API and data streams',
    python_requires='>=3.10',
    install_requires=['requests>=2.25', 'websockets>=13.0'],
    extras_require={
        'test': ['pytest==7.*', 'pytest-cov==4.*', 'pytest-xdist==3.*'],
    },
)
