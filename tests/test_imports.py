"""
Smoke tests to verify all modules can be imported.
"""

def test_import_carpatch_core():
    import carpatch_core
    assert hasattr(carpatch_core, '__version__')


def test_import_sandbox():
    import sandbox
    assert hasattr(sandbox, '__version__')


def test_import_jobs():
    import jobs
    assert hasattr(jobs, '__version__')


def test_import_cli_app():
    from jobs.cli import app
    assert app is not None
