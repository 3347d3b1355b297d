"""
Setup script for the ArtistMusic library player
"""
from setuptools import find_packages, setup

setup(
    name='artistmusic',
    version='1.0.0',
    description='Artist-centric music library and player',
    packages=find_packages(include=['artistmusic', 'artistmusic.*']),
    python_requires='>=3.10',
    install_requires=[
        'PySide6<6.12',  # 6.12.0 aborts at interpreter shutdown (bool refcount bug)
        'mutagen',
        'python-dotenv',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'artistmusic=artistmusic.app:main',
        ],
    },
)
