from setuptools import setup, find_packages

setup(
    name="reactive-forms-lib",
    version="0.1.0",
    description="Reactive form model with a pluggable validation pipeline",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        'reactive_forms': [
            'defaults.yaml',
            'form-definition.schema.json',
            'definitions/*.yaml',
        ],
    },
    include_package_data=True,
    install_requires=[
        'pyyaml>=6.0',
        'jsonschema>=4.17.0',
        'requests>=2.28.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.9',
)
