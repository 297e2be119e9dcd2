from setuptools import setup, find_packages

setup(
    name='kubeprov',
    version='0.1.0',
    packages=find_packages(),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'pyyaml',
        'pydantic>=2',
        'kubernetes',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-cov',
        ],
    },
    entry_points={
        'console_scripts': [
            'kubeprov=kubeprov.cli:app'
        ]
    },
    author='Your Name',
    description='Provision kubeadm master and worker nodes with Calico networking',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)
