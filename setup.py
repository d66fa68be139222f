from pathlib import Path

from setuptools import find_packages, setup

root = Path(__file__).parent
readme = root / "README.md"

setup(
    name="glam",
    version="0.1.0",
    description="Component tags for Jinja2 templates",
    long_description=readme.read_text("utf-8") if readme.exists() else "",
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "jinja2>=3.1",
        "markupsafe>=2.1",
        "click>=8.1",
        "rich-click>=1.7",
        "rich>=13.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "glam=glam.cli.main:main",
        ],
    },
    zip_safe=False,
)
