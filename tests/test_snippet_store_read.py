from snippy.snippet_model import Snippet
from snippy.snippet_store import SnippetStore


class MemoryBackend:
    def __init__(self):
        self.values = {}

    def get_preference(self, key, default=None):
        return self.values.get(key, default)

    def set_preference(self, key, value):
        self.values[key] = value
        return True


def _populated_store():
    store = SnippetStore(MemoryBackend())
    store.add(Snippet(name="Deploy API", description="Roll out the backend", category="Kubernetes", commands=["kubectl apply -f api.yaml"]))
    store.add(Snippet(name="Push image", description="docker registry upload", category="Docker", commands=["docker push app"]))
    store.add(Snippet(name="Status", description="quick look", category="Git", commands=["git status"]))
    return store


def test_search_matches_name_description_and_category():
    store = _populated_store()

    by_name = store.search_snippets("deploy")
    assert [s.name for s in by_name["results"]] == ["Deploy API"]

    by_description = store.search_snippets("REGISTRY")
    assert [s.name for s in by_description["results"]] == ["Push image"]

    by_category = store.search_snippets("git")
    assert [s.name for s in by_category["results"]] == ["Status"]

    everything = store.search_snippets("")
    assert everything["count"] == 3
    assert everything["total"] == 3


def test_search_with_category_filter():
    store = _populated_store()
    result = store.search_snippets("", category="Docker")
    assert result["count"] == 1
    assert result["results"][0].name == "Push image"

    assert store.search_snippets("deploy", category="Docker")["count"] == 0


def test_get_snippet_by_id():
    store = _populated_store()
    target = store.list_snippets()[1]
    assert store.get_snippet(target.id) == target
    assert store.get_snippet("nope") is None
