"""Tests for gitcms.backends.commits module."""

from __future__ import annotations

import pytest

from gitcms.backends.commits import (
    CommitType,
    FileChange,
    create_commit_message,
    get_collection_label,
)
from gitcms.backends.repository import User

POSTS = {"name": "posts", "label": "Posts", "label_singular": "Post"}


def _changes(*paths, slug="hello-world"):
    return [FileChange(path=path, slug=slug) for path in paths]


class TestDefaultTemplates:
    """Built-in commit messages."""

    @pytest.mark.parametrize(
        "commit_type, expected",
        [
            ("create", "Create Post “hello-world”"),
            ("update", "Update Post “hello-world”"),
            ("delete", "Delete Post “hello-world”"),
        ],
    )
    def test_entry_types(self, commit_type, expected):
        changes = _changes("content/posts/hello-world.md")
        assert create_commit_message(changes, commit_type, collection=POSTS) == expected

    def test_plural_label_without_singular(self):
        changes = _changes("content/posts/my-post.md", slug="my-post")
        collection = {"name": "posts", "label": "Posts"}
        result = create_commit_message(changes, "update", collection=collection)
        assert result == "Update Posts “my-post”"

    def test_enum_type(self):
        changes = _changes("content/posts/hello-world.md")
        result = create_commit_message(changes, CommitType.CREATE, collection=POSTS)
        assert result == "Create Post “hello-world”"

    def test_upload_media(self):
        changes = _changes("static/images/a.png", slug=None)
        assert create_commit_message(changes, "uploadMedia") == "Upload “static/images/a.png”"

    def test_upload_several_media(self):
        changes = _changes("static/images/a.png", "static/images/b.png", "x.png", slug=None)
        result = create_commit_message(changes, "uploadMedia")
        assert result == "Upload “static/images/a.png” +2"

    def test_delete_media(self):
        changes = _changes("static/images/a.png", "static/images/b.png", slug=None)
        result = create_commit_message(changes, "deleteMedia")
        assert result == "Delete “static/images/a.png” +1"

    def test_open_authoring(self):
        assert create_commit_message(_changes("a.md"), "openAuthoring") == "openAuthoring"

    def test_label_falls_back_to_name(self):
        result = create_commit_message(_changes("a.md"), "update", collection={"name": "docs"})
        assert result == "Update docs “hello-world”"

    def test_first_slug_used(self):
        changes = [FileChange("a.md"), FileChange("b.md", slug="second"), FileChange("c.md", slug="third")]
        assert create_commit_message(changes, "update", collection=POSTS) == "Update Post “second”"

    def test_unknown_type(self):
        assert create_commit_message(_changes("a.md"), "rename") == ""


class TestCustomTemplates:
    """``backend.commit_messages`` overrides."""

    def test_placeholders(self):
        backend = {
            "commit_messages": {
                "update": "{{collection}}: {{slug}} at {{path}} by {{author-login}} ({{author-name}})"
            }
        }
        user = User(backend_name="github", login="ann", name="Ann Lee")
        result = create_commit_message(
            _changes("content/posts/hello-world.md"),
            "update",
            collection=POSTS,
            backend_config=backend,
            user=user,
        )
        assert result == "Post: hello-world at content/posts/hello-world.md by ann (Ann Lee)"

    def test_media_template(self):
        backend = {"commit_messages": {"uploadMedia": "[media] {{path}} by {{author-login}}"}}
        user = User(backend_name="gitlab", login="ann")
        result = create_commit_message(
            _changes("a.png", slug=None), "uploadMedia", backend_config=backend, user=user
        )
        assert result == "[media] a.png by ann"

    def test_missing_user(self):
        backend = {"commit_messages": {"create": "New {{slug}} by {{author-login}}"}}
        result = create_commit_message(_changes("a.md"), "create", backend_config=backend)
        assert result == "New hello-world by "

    def test_open_authoring_template(self):
        backend = {"commit_messages": {"openAuthoring": "{{message}} via {{author-login}}"}}
        user = User(backend_name="github", login="ann")
        result = create_commit_message(
            _changes("a.md"), "openAuthoring", backend_config=backend, user=user
        )
        assert result == "openAuthoring via ann"


class TestSkipCi:
    """``[skip ci]`` prefix."""

    def test_forced(self):
        result = create_commit_message(_changes("a.md"), "update", collection=POSTS, skip_ci=True)
        assert result == "[skip ci] Update Post “hello-world”"

    def test_suppressed(self):
        backend = {"automatic_deployments": False}
        result = create_commit_message(
            _changes("a.md"), "update", collection=POSTS, skip_ci=False, backend_config=backend
        )
        assert not result.startswith("[skip ci]")

    def test_automatic_deployments_disabled(self):
        backend = {"automatic_deployments": False}
        result = create_commit_message(
            _changes("a.png", slug=None), "uploadMedia", backend_config=backend
        )
        assert result == "[skip ci] Upload “a.png”"

    def test_automatic_deployments_enabled(self):
        backend = {"automatic_deployments": True}
        result = create_commit_message(_changes("a.md"), "create", backend_config=backend)
        assert not result.startswith("[skip ci]")

    @pytest.mark.parametrize("commit_type", ["delete", "deleteMedia"])
    def test_deletions_never_skipped(self, commit_type):
        backend = {"automatic_deployments": False}
        result = create_commit_message(
            _changes("a.md"), commit_type, skip_ci=True, backend_config=backend
        )
        assert not result.startswith("[skip ci]")


class TestGetCollectionLabel:
    """Tests for get_collection_label()."""

    def test_plural(self):
        assert get_collection_label(POSTS) == "Posts"

    def test_singular(self):
        assert get_collection_label(POSTS, singular=True) == "Post"

    def test_singular_falls_back_to_label(self):
        assert get_collection_label({"name": "posts", "label": "Posts"}, singular=True) == "Posts"

    def test_name_only(self):
        assert get_collection_label({"name": "posts"}) == "posts"


def test_commit_type_lookup():
    assert CommitType.lookup("uploadMedia") is CommitType.UPLOAD_MEDIA
    assert CommitType.lookup("nope") is None
    assert CommitType.lookup(None) is None
