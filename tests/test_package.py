import netwl


def test_public_names_resolve():
    for name in netwl.__all__:
        assert getattr(netwl, name) is not None


def test_metadata():
    assert netwl.__version__ == "0.1.0"
    assert netwl.__author__ == "netwl developers"
