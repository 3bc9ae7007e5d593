#!/usr/bin/env python
"""
Test runner for the server apps and the storefront client
Usage: python run_tests.py [--coverage] [labels...]
"""
import os
import sys

import coverage
import django
from django.conf import settings
from django.test.utils import get_runner

DEFAULT_LABELS = [
    'backend.core',
    'backend.catalog',
    'backend.designs',
    'backend.content',
    'backend.testimonials',
    'backend.contact',
    'storefront',
]


if __name__ == "__main__":
    args = sys.argv[1:]
    with_coverage = '--coverage' in args
    labels = [arg for arg in args if arg != '--coverage'] or DEFAULT_LABELS

    # settings in pyproject.toml [tool.coverage.*]
    cov = coverage.Coverage() if with_coverage else None
    if cov:
        cov.start()

    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(labels)

    if cov:
        cov.stop()
        cov.save()
        cov.report()
    sys.exit(bool(failures))
