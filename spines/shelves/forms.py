from flask_wtf import FlaskForm
from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from ..models import SHELF_CHOICES, SUB_STATUS_CHOICES


class _ShelfFields(FlaskForm):
    shelf = SelectField("Shelf", choices=SHELF_CHOICES, validators=[DataRequired()])
    sub_status = SelectField("Progress", choices=SUB_STATUS_CHOICES, default="")
    rating = IntegerField("Rating", validators=[Optional(), NumberRange(min=1, max=5)])


class AddBookForm(_ShelfFields):
    google_books_id = StringField("Volume ID", validators=[DataRequired(), Length(max=64)])
    title = StringField("Title", validators=[DataRequired(), Length(max=500)])
    authors = StringField("Authors", validators=[Optional(), Length(max=500)])
    description = TextAreaField("Description", validators=[Optional()])
    thumbnail_url = StringField("Thumbnail", validators=[Optional(), Length(max=1000)])
    isbn_13 = StringField("ISBN-13", validators=[Optional(), Length(max=13)])
    isbn_10 = StringField("ISBN-10", validators=[Optional(), Length(max=10)])
    page_count = IntegerField("Pages", validators=[Optional(), NumberRange(min=0)])

    def book_data(self):
        return {
            "google_books_id": self.google_books_id.data,
            "title": self.title.data,
            "authors": self.authors.data,
            "description": self.description.data,
            "thumbnail_url": self.thumbnail_url.data,
            "isbn_13": self.isbn_13.data,
            "isbn_10": self.isbn_10.data,
            "page_count": self.page_count.data or 0,
        }


class UpdateBookForm(_ShelfFields):
    pass


class BookDatesForm(FlaskForm):
    # Free-form so that blank or unparseable values clear the date.
    added_at = StringField("Added", validators=[Optional(), Length(max=40)])
    started_reading_at = StringField("Started", validators=[Optional(), Length(max=40)])
    finished_reading_at = StringField("Finished", validators=[Optional(), Length(max=40)])
