"""Demo catalog for a fresh database."""

import json
import logging
from datetime import date, time

from sqlalchemy.orm import Session

from edulearn.db.session import commit
from edulearn.models.event import Event
from edulearn.models.resource import Resource, STATUS_APPROVED

logger = logging.getLogger(__name__)

PLACEHOLDER_THUMBNAIL = "/api/placeholder/300/200"
PLACEHOLDER_IMAGE = "/api/placeholder/400/250"

DEMO_RESOURCES = [
    ("React Fundamentals for Beginners",
     "Learn the basics of React including components, props, and state management.",
     "beginner", "programming", ["React", "JavaScript", "Frontend"], "course", "4 hours", "John Doe", 4.8),
    ("Advanced TypeScript Patterns",
     "Master advanced TypeScript patterns and best practices for enterprise applications.",
     "advanced", "programming", ["TypeScript", "Patterns", "Enterprise"], "tutorial", "2 hours", "Jane Smith", 4.9),
    ("UI/UX Design Principles",
     "Essential design principles for creating user-friendly interfaces.",
     "intermediate", "design", ["UI/UX", "Design", "Principles"], "article", "1 hour", "Mike Johnson", 4.7),
    ("Business Strategy Fundamentals",
     "Learn the core concepts of business strategy and competitive analysis.",
     "beginner", "business", ["Strategy", "Business", "Analysis"], "course", "6 hours", "Sarah Wilson", 4.6),
    ("Data Science with Python",
     "Complete guide to data science using Python, pandas, and machine learning.",
     "intermediate", "data-science", ["Python", "Data Science", "ML"], "course", "8 hours", "David Lee", 4.8),
    ("Digital Marketing Essentials",
     "Master the fundamentals of digital marketing and social media strategy.",
     "beginner", "marketing", ["Marketing", "Digital", "Social Media"], "tutorial", "3 hours", "Emily Chen", 4.5),
]

DEMO_EVENTS = [
    ("React Advanced Patterns Workshop",
     "Deep dive into advanced React patterns including compound components, render props, and custom hooks.",
     date(2025, 7, 20), time(14, 0), "Tech Hub, Room 201", "workshop", 30, 22,
     ["React", "JavaScript", "Advanced"], "Sarah Johnson"),
    ("UX Design Fundamentals",
     "Learn the core principles of user experience design and how to apply them in real projects.",
     date(2025, 7, 22), time(18, 0), "Online", "webinar", 100, 67,
     ["UX", "Design", "Beginner"], "Mike Chen"),
    ("Data Science Career Panel",
     "Industry professionals share insights about breaking into data science careers.",
     date(2025, 7, 25), time(19, 0), "Main Auditorium", "seminar", 150, 89,
     ["Data Science", "Career", "Panel"], None),
    ("Startup Networking Mixer",
     "Connect with entrepreneurs, investors, and fellow startup enthusiasts in a casual setting.",
     date(2025, 7, 28), time(17, 30), "Innovation Center Lobby", "networking", 80, 45,
     ["Networking", "Startup", "Business"], None),
    ("Machine Learning Bootcamp",
     "Intensive 2-day bootcamp covering ML fundamentals and practical applications.",
     date(2025, 8, 1), time(9, 0), "Computer Lab A", "workshop", 25, 18,
     ["Machine Learning", "Python", "Intensive"], "Dr. Emily Rodriguez"),
    ("Digital Marketing Strategy",
     "Learn how to create effective digital marketing campaigns for modern businesses.",
     date(2025, 8, 5), time(16, 0), "Online", "webinar", 200, 134,
     ["Marketing", "Digital", "Strategy"], "Alex Thompson"),
]


def seed_catalog(db: Session) -> dict:
    """Insert the demo resources and events into empty tables; returns inserted counts."""
    added = {"resources": 0, "events": 0}

    if db.query(Resource.id).first() is None:
        for title, description, level, course, tags, kind, duration, author, rating in DEMO_RESOURCES:
            db.add(Resource(
                title=title, description=description, level=level, course=course,
                tags=json.dumps(tags), type=kind, duration=duration, author=author,
                rating=rating, thumbnail=PLACEHOLDER_THUMBNAIL, link="#", status=STATUS_APPROVED,
            ))
            added["resources"] += 1

    if db.query(Event.id).first() is None:
        for title, description, day, start, location, kind, capacity, registered, tags, speaker in DEMO_EVENTS:
            db.add(Event(
                title=title, description=description, date=day, time=start, location=location,
                type=kind, capacity=capacity, registered=registered, tags=json.dumps(tags),
                speaker=speaker, image=PLACEHOLDER_IMAGE, status=STATUS_APPROVED,
            ))
            added["events"] += 1

    commit(db)
    if added["resources"] or added["events"]:
        logger.info("Seeded %s resources and %s events", added["resources"], added["events"])
    return added
