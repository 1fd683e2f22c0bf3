from setuptools import setup, find_packages

setup(
    name='kbsync',
    version='0.1.0',
    packages=find_packages(exclude=['*.tests', '*.tests.*']),
    entry_points={
        'console_scripts': [
            'kbsync=kbsync.cli:main',
        ],
    },
    install_requires=[
        'aiohttp',
        'click',
        'pydantic>=2',
        'python-dotenv',
        'pyyaml',
        'tzdata',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
            'pytest-asyncio',
        ],
    },
    author='While True Industries',
    author_email='adam@whiletrue.industries',
    description='Content-addressed sync of harvested reports into chat-bot knowledge bases',
    python_requires='>=3.10',
)
