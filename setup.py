"""Install the MongoDB session store package."""

from setuptools import setup, find_packages

setup(
    name='mongosession',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask",
        "werkzeug",
        "pymongo",
        "pyjwt>=2",
        "cryptography",
        "pytz",
        "python-json-logger",
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False
)
