from setuptools import setup
from rsyncm._info import __version__, __long_description__

config = {
    'name':'rsyncm',
    'version':__version__,
    'description':'rsync with multiple hosts at once.',
    'license':'GNU GPL',
    'keywords':'rsync multiple parallel',
    'packages':[
        'rsyncm',
        ],
    'long_description':__long_description__,
    'install_requires': [
        'pyzmq',
        ],
    'extras_require': {
        'test': [
            'mock',
            ],
        },
    'classifiers':[
        "Development Status :: 5 - Production/Stable",
        "Topic :: Utilities",
        "License :: OSI Approved :: GNU General Public License (GPL)"
        ],
    'entry_points':{
        'console_scripts': [
            'rsyncm = rsyncm.main:main'
            ]
        },
    }

setup(**config)
