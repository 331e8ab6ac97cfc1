from itertools import chain
from setuptools import setup

extras = {
    'mpi': ['mpi4py'],
    'test': ['pytest>=3.10', 'flake8', 'coverage'],
}
# 'all' includes all of the above
extras['all'] = list(chain(*extras.values()))

setup(name='densopt',
      version='2024.0.0',
      description='Optimality criteria and volume enforcement for density-based topology optimization.',
      author='The densopt developers',
      author_email='densopt@example.org',
      license='LGPL-3',
      packages=['densopt',
                'densopt.optimization'],
      package_dir={'densopt': 'densopt'},
      python_requires='>=3.8',
      install_requires=['numpy', 'scipy>=1.0'],
      extras_require=extras
      )
