from setuptools import setup, find_packages

setup(
    name="pillminder",
    version="0.1.0",
    description="Medication reminder scheduling service",
    packages=find_packages(include=["pillminder", "pillminder.*"]),
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "celery",
        "kombu",
        "apscheduler>=3.10,<4",
        "prometheus-client",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "pillminder-worker=pillminder.worker:main",
        ],
    },
)
