"""Demo Seed - resets the database to four users and four published posts.

Run with `python -m app.db.seed` after `alembic upgrade head`.

Invariants:
    - Existing users, posts, likes, and comments are deleted first
    - Every seeded user gets a fixed bearer token ("demo-<first name>") so clients can sign in
    - like/comment rows respect the same constraints as the REST layer (one like per user)
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.session import create_session_factory
from app.infrastructure.observability import setup_logging
from app.models.comment import Comment
from app.models.like import PostLike
from app.models.post import Post
from app.models.user import User

logger = logging.getLogger(__name__)

_AVATAR = "https://images.unsplash.com/{}?w=100&h=100&fit=crop&crop=face"
_COVER = "https://images.unsplash.com/{}?w=800&h=400&fit=crop"

DEMO_USERS = [
    {
        "name": "John Doe",
        "email": "john@example.com",
        "bio": "Full-stack developer passionate about modern web technologies.",
        "avatar": _AVATAR.format("photo-1472099645785-5658abf4ff4e"),
    },
    {
        "name": "Jane Smith",
        "email": "jane@example.com",
        "bio": "AI researcher and tech enthusiast exploring the future of technology.",
        "avatar": _AVATAR.format("photo-1494790108755-2616b612b786"),
    },
    {
        "name": "Mike Johnson",
        "email": "mike@example.com",
        "bio": "Database architect with expertise in scalable systems.",
        "avatar": _AVATAR.format("photo-1507003211169-0a1dd7228f2d"),
    },
    {
        "name": "Sarah Wilson",
        "email": "sarah@example.com",
        "bio": "UI/UX designer creating beautiful and functional interfaces.",
        "avatar": _AVATAR.format("photo-1438761681033-6461ffad8d80"),
    },
]

# author / likers / commenters are indexes into DEMO_USERS
DEMO_POSTS = [
    {
        "title": "Building Modern Web Applications with React and TypeScript",
        "content": (
            "React and TypeScript have become the go-to combination for building robust, "
            "scalable web applications. This guide covers typed component props, custom "
            "hooks, and project setup for maintainable, type-safe front ends."
        ),
        "excerpt": (
            "Learn how to build scalable and maintainable web applications using React "
            "and TypeScript with modern development practices."
        ),
        "image": "photo-1555066931-4365d14bab8c",
        "tags": ["react", "typescript", "web development", "javascript"],
        "views": 1245,
        "author": 0,
        "likers": [1, 2, 3],
        "comments": [
            (1, "Great article! The TypeScript examples are really helpful."),
            (2, "I love how you explained the benefits of using TypeScript with React."),
        ],
    },
    {
        "title": "The Future of AI in Software Development",
        "content": (
            "AI assistants are changing how code gets written, reviewed, and tested. "
            "We look at code completion, automated review, and what these tools mean for "
            "the day-to-day work of developers."
        ),
        "excerpt": (
            "Discover how AI tools like Gemini and GPT are revolutionizing software "
            "development and what it means for developers."
        ),
        "image": "photo-1677442136019-21780ecad995",
        "tags": ["ai", "machine learning", "development tools", "future tech"],
        "views": 892,
        "author": 1,
        "likers": [0, 2],
        "comments": [
            (0, "Fascinating insights! I've been using GitHub Copilot and it's amazing."),
        ],
    },
    {
        "title": "Database Design Best Practices for Scalable Applications",
        "content": (
            "Good schemas survive growth. Normalization, indexing strategy, partitioning, "
            "and read replicas are the building blocks of systems that handle millions of users."
        ),
        "excerpt": (
            "Master the art of database design with proven strategies for building "
            "systems that can handle millions of users."
        ),
        "image": "photo-1544383835-bda2bc66a55d",
        "tags": ["database", "postgresql", "architecture", "scalability"],
        "views": 567,
        "author": 2,
        "likers": [0, 1],
        "comments": [
            (1, "Excellent breakdown of database scaling strategies!"),
        ],
    },
    {
        "title": "Creating Beautiful UIs with Shadcn/ui and Tailwind CSS",
        "content": (
            "Shadcn/ui gives you accessible, copy-in components styled with Tailwind CSS. "
            "We build a small design system and cover theming, variants, and consistency."
        ),
        "excerpt": (
            "Transform your web applications with beautiful, accessible components using "
            "Shadcn/ui and Tailwind CSS."
        ),
        "image": "photo-1561070791-2526d30994b5",
        "tags": ["ui/ux", "tailwind css", "design systems", "react"],
        "views": 734,
        "author": 3,
        "likers": [0, 1, 2],
        "comments": [
            (0, "Love the practical examples! Shadcn/ui is amazing."),
            (2, "Great tutorial on building accessible components."),
        ],
    },
]


def demo_token(user: dict) -> str:
    return f"demo-{user['name'].split()[0].lower()}"


async def seed_demo_data(db: AsyncSession) -> list[User]:
    """Replace all blog data with the demo set. Returns the seeded users."""
    for model in (Comment, PostLike, Post, User):
        await db.execute(delete(model))

    users = [User(**data, api_token=demo_token(data)) for data in DEMO_USERS]
    db.add_all(users)
    await db.flush()

    now = datetime.now(timezone.utc)
    for age, data in enumerate(reversed(DEMO_POSTS)):
        created_at = now - timedelta(days=age)
        post = Post(
            title=data["title"],
            content=data["content"],
            excerpt=data["excerpt"],
            image_url=_COVER.format(data["image"]),
            tags=list(data["tags"]),
            published=True,
            views=data["views"],
            author_id=users[data["author"]].id,
            created_at=created_at,
            updated_at=created_at,
        )
        post.likes = [PostLike(user_id=users[i].id) for i in data["likers"]]
        post.comments = [
            Comment(user_id=users[i].id, content=content)
            for i, content in data["comments"]
        ]
        db.add(post)

    await db.commit()
    logger.info(f"Seeded {len(users)} users and {len(DEMO_POSTS)} posts")
    return users


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    session_factory = create_session_factory(settings.database_url)
    async with session_factory() as db:
        users = await seed_demo_data(db)
    for user in users:
        logger.info(f"Demo user {user.email}: token {user.api_token}")


if __name__ == "__main__":
    asyncio.run(main())
