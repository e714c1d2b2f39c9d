from setuptools import find_packages, setup

package_name = 'robot_console'

setup(
    name=package_name.replace('_', '-'),
    version='1.0.0',
    packages=find_packages(include=[package_name, package_name + '.*']),
    python_requires='>=3.9',
    install_requires=[
        'setuptools',
        'rich',
        'PyQt6>=6.5.0',
        'PyYAML>=6.0',
        'requests>=2.28',
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
    maintainer='Robot Console Developers',
    maintainer_email='robot-console@example.com',
    description='Telemetry/command channel and joint motion simulator for a 6-axis robot arm console',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'robot-console = robot_console.cli:main',
        ],
    },
)
