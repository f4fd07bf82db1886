[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "assessment-analytics"
version = "0.1.0"
description = "Activity tracking, proctoring events and analytics for an online assessment service"
requires-python = ">=3.10"
keywords = ["assessment", "analytics", "proctoring", "activity", "education"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Education :: Testing",
]
dependencies = [
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["assessment_analytics"]

[tool.pytest.ini_options]
addopts = "-ra"
