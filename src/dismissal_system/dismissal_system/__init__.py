"""School Dismissal Queue package.

This package is organized by feature modules (queue, admission, aggregation, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
