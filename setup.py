"""
Package installation and setup script for Top1000 Ingest.
"""

from setuptools import setup, find_packages
import os

# Read the README file
readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
if os.path.exists(readme_path):
    with open(readme_path, 'r', encoding='utf-8') as f:
        long_description = f.read()
else:
    long_description = 'Top1000 Ingest - fetches the IYUU Top1000 feed and publishes it as a static JSON snapshot'

requirements = [
    'requests>=2.31.0',
    'python-dateutil>=2.8.2',
    'pytz>=2023.3',
    'schedule>=1.2.0',
    'python-dotenv>=1.0.0',
    'user-agent>=0.1.10',
    'filelock>=3.12.0',
]

setup(
    name='top1000-ingest',
    version='1.0.0',
    description='Fetches the IYUU Top1000 feed, parses it and publishes a static JSON snapshot',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='Top1000 Team',

    # Package discovery
    packages=find_packages(exclude=['tests*']),
    include_package_data=True,

    # Dependencies
    install_requires=requirements,

    # Optional dependencies
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'black>=23.0.0',
            'flake8>=5.0.0',
        ],
        'test': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'responses>=0.23.0',
        ]
    },

    # Entry points
    entry_points={
        'console_scripts': [
            'top1000-ingest=top1000.main:main',
        ],
    },

    # Metadata
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Text Processing',
    ],

    # Python version requirement
    python_requires='>=3.10',

    # Keywords
    keywords='iyuu top1000 torrent feed ingestion snapshot',

    # License
    license='MIT',

    # Zip safe
    zip_safe=False,
)
