import codecs
import os
import re

from setuptools import find_packages
from setuptools import setup


def read_file(filename, encoding='utf8'):
    """Read unicode from given file."""
    with codecs.open(filename, encoding=encoding) as fd:
        return fd.read()


here = os.path.abspath(os.path.dirname(__file__))

# read version number (and other metadata) from package init
init_fn = os.path.join(here, 'acme_issuer', '__init__.py')
meta = dict(re.findall(r"""__([a-z]+)__ = '([^']+)""", read_file(init_fn)))

readme = read_file(os.path.join(here, 'README.rst'))
version = meta['version']

# This package relies on requests through acme as well, it is listed here
# because the HTTP self verification uses it directly.
install_requires = [
    'acme>=2.0.0',
    'boto3',
    'botocore',
    'ConfigArgParse>=1.5.3',
    'cryptography>=43.0.0',
    'dnspython>=2.0.0',
    'josepy>=2.0.0',
    'requests>=2.20.0',
]

test_extras = [
    'pytest',
]

setup(
    name='acme-issuer',
    version=version,
    description="ACME client issuing certificates through http-01 or Route53 dns-01",
    long_description=readme,
    license='Apache License 2.0',
    python_requires='>=3.9',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Security',
        'Topic :: System :: Networking',
        'Topic :: System :: Systems Administration',
        'Topic :: Utilities',
    ],

    packages=find_packages(include=['acme_issuer', 'acme_issuer.*']),
    include_package_data=True,

    install_requires=install_requires,
    extras_require={
        'test': test_extras,
    },

    entry_points={
        'console_scripts': [
            'acme-issuer = acme_issuer.__main__:main',
        ],
    },
)
