"""
Policies for the blog models.

Editors may update any post, admins may delete anything. Guests (no
subject) may only view published content.
"""

from __future__ import annotations

from resource_abilities.abilities.gate import role_names
from resource_abilities.abilities.policy import Policy, PolicyRegistry
from resource_abilities.models.blog import Comment, Post
from resource_abilities.models.security import User

PostPolicy = Policy("PostPolicy", model=Post)
CommentPolicy = Policy("CommentPolicy", model=Comment)


@PostPolicy.check(guest=True)
def view(user: User | None, post: Post) -> bool:
    if post.is_published:
        return True
    if user is None:
        return False
    return user.id == post.author_id or "editor" in role_names(user)


@PostPolicy.check()
def update(user: User, post: Post) -> bool:
    return user.id == post.author_id or bool(role_names(user) & {"editor", "admin"})


@PostPolicy.check()
def delete(user: User, post: Post) -> bool:
    return user.id == post.author_id or "admin" in role_names(user)


@PostPolicy.check(instance=False)
def create(user: User) -> bool:
    return user.is_active


@CommentPolicy.check("view", guest=True)
def view_comment(user: User | None, comment: Comment) -> bool:
    return True


@CommentPolicy.check("update")
def update_comment(user: User, comment: Comment) -> bool:
    return user.id == comment.author_id


@CommentPolicy.check("delete")
def delete_comment(user: User, comment: Comment) -> bool:
    return user.id == comment.author_id or bool(role_names(user) & {"moderator", "admin"})


def build_registry() -> PolicyRegistry:
    return PolicyRegistry([PostPolicy, CommentPolicy])
