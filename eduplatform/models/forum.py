from sqlalchemy import Column, Integer, String, Text, ForeignKey, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from eduplatform.database import Base
from eduplatform.utils.time_utils import get_local_time

class ForumCategory(Base):
    __tablename__ = "forum_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)

class ForumPost(Base):
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("forum_categories.id"), nullable=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String, default="published") # published, hidden
    is_pinned = Column(Boolean, default=False)
    is_answered = Column(Boolean, default=False)
    view_count = Column(Integer, default=0)
    reply_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=get_local_time)
    last_activity_at = Column(DateTime, default=get_local_time)

    category = relationship("ForumCategory")

class ForumReply(Base):
    __tablename__ = "forum_replies"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String, default="published")
    upvotes = Column(Integer, default=0)
    is_accepted_answer = Column(Boolean, default=False)

    created_at = Column(DateTime, default=get_local_time)

class ForumUpvote(Base):
    __tablename__ = "forum_upvotes"
    __table_args__ = (UniqueConstraint("reply_id", "user_id", name="uq_forum_upvote"),)

    id = Column(Integer, primary_key=True, index=True)
    reply_id = Column(Integer, ForeignKey("forum_replies.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

class ForumFlag(Base):
    __tablename__ = "forum_flags"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id"), nullable=True)
    reply_id = Column(Integer, ForeignKey("forum_replies.id"), nullable=True)
    flagged_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    reason = Column(String, nullable=False)
    is_resolved = Column(Boolean, default=False)

    created_at = Column(DateTime, default=get_local_time)
