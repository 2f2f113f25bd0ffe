__AUTHOR__ = 'mysql-backup contributors'
__VERSION__ = '1.0.0'
__EMAIL__ = 'mysql-backup@users.noreply.github.com'
__LICENSE__ = 'MIT'

import os
import re
from pathlib import Path

from setuptools import find_namespace_packages, setup

with open(Path(__file__).parent / 'README.md') as f:
    lines = f.readlines()
    filtered = [
        x for x in lines
        if not re.match(r'^[\[!]{2}', x) and len(x) > 0
    ]
    readme = ''.join(filtered)

with open(Path(__file__).parent / 'requirements.txt') as f:
    requirements = f.read()

package_data = {
    'mysql_backup.data': ['*.toml'],
}

data_files = None
if os.environ.get('DEB_BUILD') in ('1', 'true', 'True'):
    data_files = [
        ('/etc/mysql-backup',
         ['src/mysql_backup/data/default.toml']),
        ('/usr/share/doc/mysql-backup', ['README.md']),
    ]

setup(
    name='mysql_backup',
    python_requires=">=3.10",
    version=__VERSION__,
    license=__LICENSE__,
    author=__AUTHOR__,
    author_email=__EMAIL__,
    maintainer=__AUTHOR__,
    maintainer_email=__EMAIL__,
    description='Per table MySQL backups with daily, weekly, monthly and yearly rotation.',
    long_description=readme.split('## Installation')[0].split('# mysql-backup')[-1].strip(),
    long_description_content_type='text/markdown',
    # Not needed / using auto discovery
    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src'),
    package_data=package_data,
    entry_points={
        'console_scripts': ['mysql-backup=mysql_backup.run:main'],
    },
    install_requires=requirements,
    extras_require={
        'test': ['pytest'],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'Topic :: System :: Archiving :: Backup',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
    data_files=data_files
)
