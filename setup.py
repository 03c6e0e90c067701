import setuptools
import re

with open('beatmapkit/__init__.py', 'r') as f:
    version = re.search(r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]', f.read(), re.MULTILINE).group(1)

with open('README.md', 'r') as f:
    long_description = f.read()

setuptools.setup(
    name = 'beatmapkit',
    version = version,
    packages = setuptools.find_packages(exclude=('tests', 'tests.*')),
    description = "A single-pass reader for osu!'s .osu beatmap format.",
    long_description = long_description,
    long_description_content_type = 'text/markdown',
    license = 'MIT',
    install_requires = [
        'aiohttp',
        'orjson'
    ],
    extras_require = {
        'test': ['pytest']
    },
    python_requires = '>=3.9',
    package_data = {
        'beatmapkit': ['py.typed'],
    },
    entry_points = {
        'console_scripts': ['beatmapkit = beatmapkit.__main__:main'],
    },
    classifiers = [
        'Programming Language :: Python :: 3.9',
        'License :: OSI Approved :: MIT License',
    ]
)
