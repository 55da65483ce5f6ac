"""Setup script for the roster calendar timeline engine."""

from pathlib import Path

from setuptools import find_namespace_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

requirements = [
    "pydantic>=2.0",
    "python-dateutil>=2.8",
    "icalendar>=5.0",
    "colorlog>=6.0",
]

test_requirements = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
]

setup(
    name="roster-calendar",
    version="0.1.0",
    description="Recurrence expansion and calendar aggregation engine for staff rosters",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Roster Calendar Team",
    # Package configuration; subpackages are namespace packages
    packages=find_namespace_packages(include=["roster_calendar", "roster_calendar.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
    ],
    keywords="calendar recurrence rrule roster schedule leave timeline async",
    entry_points={
        "console_scripts": [
            "roster-calendar=roster_calendar.__main__:main",
        ],
    },
    zip_safe=False,
)
