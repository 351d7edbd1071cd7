# cartorder/api/__init__.py
