# backend/models/fabric.py

from datetime import datetime
from .base import db

# Gallery segments stored on a fabric, keyed by their document field
GALLERY_FIELDS = {
    'men': 'men_collection',
    'women': 'women_collection',
    'kids': 'kids_collection',
}


class Fabric(db.Model):
    __tablename__ = 'fabrics'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    main_image = db.Column(db.String(1024), nullable=False)
    men_collection = db.Column(db.JSON, nullable=False, default=list)
    women_collection = db.Column(db.JSON, nullable=False, default=list)
    kids_collection = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def gallery(self, segment):
        return list(getattr(self, GALLERY_FIELDS[segment]) or [])

    def add_images(self, segment, urls):
        """Array union: append urls not already present, keeping upload order."""
        current = self.gallery(segment)
        for url in urls:
            if url not in current:
                current.append(url)
        # Reassign so the JSON column is flagged as modified
        setattr(self, GALLERY_FIELDS[segment], current)
        return current

    def remove_image(self, segment, url):
        """Array remove: drop every occurrence of url. Returns True if one was present."""
        current = self.gallery(segment)
        remaining = [u for u in current if u != url]
        setattr(self, GALLERY_FIELDS[segment], remaining)
        return len(remaining) != len(current)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'mainImage': self.main_image,
            'menCollection': self.gallery('men'),
            'womenCollection': self.gallery('women'),
            'kidsCollection': self.gallery('kids'),
            'machines': [machine.id for machine in self.machines],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Fabric id={self.id} name={self.name}>'
