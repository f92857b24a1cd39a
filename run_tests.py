#!/usr/bin/env python
"""
Test runner script for the storefront apps
Usage: python run_tests.py [app labels...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storefront.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(sys.argv[1:] or [
        'storefront.core',
        'storefront.catalog',
        'storefront.uploads',
    ])
    sys.exit(bool(failures))
