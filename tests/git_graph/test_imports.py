def test_root_imports():
    from git_graph import GitGraphHost, ChangeBus, ExecutableIdentity, RepositoryRecord  # noqa: F401


def test_resolver_imports():
    from git_graph import ExecutableResolver, SubprocessExecutableResolver  # noqa: F401


def test_all_exports():
    """Verify all documented exports are available."""
    import git_graph

    for name in git_graph.__all__:
        assert getattr(git_graph, name) is not None, name
