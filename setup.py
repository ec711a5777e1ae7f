from setuptools import setup

with open("README.md", 'r') as f:
    long_description = f.read()

setup(
    # Module info
    name='svp_planning',
    version='0.1',
    description='A module for computing optimal policies of discretized MDPs'+\
                        ' with structured value-based planning: subsampled'+\
                        ' Bellman backups and matrix estimation',
    license="GNU 3.0",
    long_description=long_description,

    # Internal Modules
    packages=[
        'svp_planning',
        'svp_planning.modeling'
    ],
    package_dir={
        'svp_planning': 'svp_planning/',
        'svp_planning.modeling': 'svp_planning/modeling'
    },

    # Requirements
    install_requires=[
        'numpy',
        'matplotlib'
    ],
    extras_require={
        'test': ['pytest']
    }
)
