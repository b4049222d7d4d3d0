"""Shared pytest fixtures for immortal tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from immortal.core import ir
from immortal.core.serialization import save_project

FIXED_CREATED_AT = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


def make_user_entity() -> ir.Node:
    """User entity: uuid pk, unique email, optional display name."""
    user = ir.Node.new_entity("User")
    user.add_field(ir.Field.string("email").mark_required().unique())
    user.add_field(ir.Field.string("display_name"))
    return user


def make_post_entity() -> ir.Node:
    """Post entity with a foreign key to User."""
    post = ir.Node.new_entity("Post")
    post.add_field(ir.Field.string("title").mark_required())
    post.add_field(ir.Field.text("body"))
    post.add_field(
        ir.Field.uuid("author_id")
        .mark_required()
        .indexed()
        .foreign_key("User", on_delete=ir.ForeignKeyAction.CASCADE)
    )
    return post


@pytest.fixture
def empty_graph() -> ir.ProjectGraph:
    """Return an empty project graph."""
    return ir.ProjectGraph.new("Empty")


@pytest.fixture
def blog_graph() -> ir.ProjectGraph:
    """
    Return a small but complete project.

    Two entities joined by a relationship, login/register/logout nodes and
    one REST endpoint. The creation time is fixed so generated migration
    versions are predictable.
    """
    graph = ir.ProjectGraph.new("Blog")
    graph.meta.created_at = FIXED_CREATED_AT
    graph.meta.description = "A tiny blog"

    user = make_user_entity()
    post = make_post_entity()
    graph.add_node(user)
    graph.add_node(post)
    graph.add_relationship(user.id, post.id, ir.RelationType.ONE_TO_MANY)

    graph.add_node(ir.Node.new_login("Login"))
    graph.add_node(ir.Node.new_register("Register"))
    graph.add_node(ir.Node.new_logout("Logout"))

    posts = ir.Node.new_rest_endpoint("ListPosts")
    posts.set_config("path", "/posts")
    graph.add_node(posts)

    graph.dirty = False
    return graph


@pytest.fixture
def blog_project_file(tmp_path: Path, blog_graph: ir.ProjectGraph) -> Path:
    """Write the blog project to a temporary project file."""
    return save_project(blog_graph, tmp_path / "blog.imm.json")
