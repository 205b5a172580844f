[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "k8sdemo"
version = "0.1.0"
description = "Small Kubernetes-style services: a scheduler extender, admission webhooks, resource types, a reconciler and helper tools"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kubernetes",
    "scheduler-extender",
    "admission-webhook",
    "json-patch",
    "reconciler",
    "local-path",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
k8sdemo-extender = "k8sdemo.extender_server:main"
k8sdemo-pagination = "k8sdemo.pagination:main"
k8sdemo-provisioner = "k8sdemo.provisioner:main"
k8sdemo-annotator = "k8sdemo.annotator:main"
k8sdemo-admission = "k8sdemo.admission_server:main"

[tool.hatch.build.targets.wheel]
packages = ["k8sdemo"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
