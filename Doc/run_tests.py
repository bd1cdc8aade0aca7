#!/usr/bin/env python
"""
Run the Django test suites of every back office app with Django's own runner.
Usage: python Doc/run_tests.py [app_label ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backend.core',
    'backend.catalog',
    'backend.inventory',
    'backend.parties',
    'backend.orders',
    'backend.reports',
    'backend.exports',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    labels = [f'backend.{label}' if '.' not in label else label for label in sys.argv[1:]]
    failures = test_runner.run_tests(labels or APPS)
    sys.exit(bool(failures))
