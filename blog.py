"""Blog posts: listing with filters, slug lookup and admin CRUD"""
import logging
import math
import re
from typing import List, Optional, Union

from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, now, parse_object_id, to_str_id
from errors import InvalidInput, NotFound
from schemas import Blog, BlogStatus, BlogUpdate
from validation import first_error

logger = logging.getLogger(__name__)

COLLECTION = "blog"
WORDS_PER_MINUTE = 200
MAX_PAGE_SIZE = 50
PLACEHOLDER_IMAGE = "https://via.placeholder.com/1200x630/ff6b6b/ffffff?text=Blog+Image"
SORT_FIELDS = ("createdAt", "updatedAt", "publishedAt", "title", "views", "likes", "readTime")


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")


def read_time(content: str) -> int:
    words = len(content.split())
    return min(60, max(1, math.ceil(words / WORDS_PER_MINUTE)))


def with_url(doc: dict) -> dict:
    d = to_str_id(doc)
    d["url"] = f"/blogs/{d.get('slug')}"
    return d


class BlogService:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[COLLECTION]

    def list(self, category: Optional[str] = None, featured: Optional[bool] = None,
             published: bool = True, status: Optional[str] = None, author: Optional[str] = None,
             search: Optional[str] = None, tags: Optional[str] = None, page: int = 1,
             limit: int = 20, sort_by: str = "createdAt", sort_order: str = "desc") -> dict:
        query = {"published": published}
        if status:
            query["status"] = status
        if category:
            query["category"] = category
        if featured is not None:
            query["featured"] = featured
        if author:
            query["author.name"] = {"$regex": re.escape(author), "$options": "i"}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"excerpt": pattern}, {"content": pattern}, {"tags": pattern}]
        if tags:
            query["tags"] = {"$in": [t.strip() for t in tags.split(",") if t.strip()]}

        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        if sort_by not in SORT_FIELDS:
            sort_by = "createdAt"
        direction = DESCENDING if sort_order == "desc" else ASCENDING

        cursor = (self.collection.find(query, {"content": 0})
                  .sort(sort_by, direction)
                  .skip((page - 1) * limit)
                  .limit(limit))
        total = self.collection.count_documents(query)

        blogs = []
        for doc in cursor:
            blog = with_url(doc)
            excerpt = blog.get("excerpt", "")
            if len(excerpt) > 200:
                blog["excerpt"] = excerpt[:200] + "..."
            blogs.append(blog)

        return {
            "blogs": blogs,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
                "hasNext": page * limit < total,
                "hasPrev": page > 1,
            },
        }

    def _find(self, id_or_slug: str) -> Optional[dict]:
        oid = parse_object_id(id_or_slug)
        if oid is not None:
            return self.collection.find_one({"_id": oid})
        return self.collection.find_one({"slug": id_or_slug})

    def get(self, id_or_slug: str, increment_views: bool = False, include_unpublished: bool = False) -> dict:
        doc = self._find(id_or_slug)
        if not doc or (not doc.get("published") and not include_unpublished):
            raise NotFound("Blog not found")

        if increment_views:
            doc = self.collection.find_one_and_update(
                {"_id": doc["_id"]}, {"$inc": {"views": 1}}, return_document=ReturnDocument.AFTER
            )

        related = (self.collection.find(
            {"_id": {"$ne": doc["_id"]}, "category": doc.get("category"), "published": True},
            {"title": 1, "slug": 1, "image": 1, "excerpt": 1, "readTime": 1, "createdAt": 1},
        ).sort("createdAt", DESCENDING).limit(3))

        blog = with_url(doc)
        blog["relatedBlogs"] = [with_url(r) for r in related]
        return blog

    def featured(self) -> List[dict]:
        cursor = self.collection.find({"featured": True, "published": True}).sort("createdAt", DESCENDING).limit(3)
        return [with_url(d) for d in cursor]

    def by_category(self, category: str) -> List[dict]:
        cursor = self.collection.find({"category": category, "published": True}).sort("createdAt", DESCENDING)
        return [with_url(d) for d in cursor]

    def create(self, data: Union[Blog, dict], author_name: Optional[str] = None) -> dict:
        try:
            blog = data if isinstance(data, Blog) else Blog.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))

        doc = blog.model_dump()
        stamp = now()
        if not doc.get("slug"):
            doc["slug"] = f"{slugify(blog.title)}-{int(stamp.timestamp() * 1000)}"
        if not doc.get("image"):
            doc["image"] = PLACEHOLDER_IMAGE
        if author_name and doc["author"]["name"] == "Grainly Team":
            doc["author"]["name"] = author_name
        doc.update(
            readTime=read_time(blog.content),
            status=BlogStatus.PUBLISHED.value if blog.published else BlogStatus.DRAFT.value,
            publishedAt=stamp if blog.published else None,
            views=0,
            likes=0,
            shares=0,
            lastModified=stamp,
        )
        try:
            doc = create_document(self.db, COLLECTION, doc)
        except DuplicateKeyError:
            raise InvalidInput("Blog with this title already exists")
        logger.info("Blog created: %s", doc["slug"])
        return with_url(doc)

    def update(self, blog_id: str, data: Union[BlogUpdate, dict]) -> dict:
        try:
            update = data if isinstance(data, BlogUpdate) else BlogUpdate.model_validate(data)
        except ValidationError as e:
            raise InvalidInput(first_error(e))

        oid = parse_object_id(blog_id)
        existing = self.collection.find_one({"_id": oid}) if oid is not None else None
        if not existing:
            raise NotFound("Blog not found")

        changes = update.model_dump(exclude_unset=True)
        stamp = now()
        if "content" in changes:
            changes["readTime"] = read_time(changes["content"])
        if "published" in changes:
            changes["status"] = BlogStatus.PUBLISHED.value if changes["published"] else BlogStatus.DRAFT.value
        elif "status" in changes:
            changes["published"] = changes["status"] == BlogStatus.PUBLISHED.value
        if changes.get("status") == BlogStatus.PUBLISHED.value and not existing.get("publishedAt"):
            changes["publishedAt"] = stamp
        changes["lastModified"] = stamp
        changes["updatedAt"] = stamp

        doc = self.collection.find_one_and_update(
            {"_id": existing["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        logger.info("Blog updated: %s", doc["slug"])
        return with_url(doc)

    def delete(self, blog_id: str):
        oid = parse_object_id(blog_id)
        if oid is None or self.collection.delete_one({"_id": oid}).deleted_count == 0:
            raise NotFound("Blog not found")
        logger.info("Blog deleted: %s", blog_id)
