"""Catalogue model shared by the tests.

publisher 1--* book   (has_many, FK column ``book.publisher``)
book      1--* review (references_many, FK column ``review.book``; review has no label)
author    *--* book   (has_many_through ``book_author``)
tag       *--* book   (references_many_through ``book_tag``; read-only on both sides)
"""
from entityql import Date, DateTime, Decimal, Int, Model, String, Time


def build_model(freeze: bool = True) -> Model:
    model = Model()
    book = model.define('book', {
        'id': Int.computed(),
        'title': String,
        'data_criacao': DateTime,
        'price': Decimal.optional(),
    }, label='title')
    author = model.define('author', {
        'id': Int.computed(),
        'name': String,
        'born': Date.optional(),
    }, label='name')
    publisher = model.define('publisher', {
        'id': Int.computed(),
        'name': String,
    }, label='name')
    review = model.define('review', {
        'id': Int.computed(),
        'body': String,
        'posted_at': Time.optional(),
    })
    tag = model.define('tag', {
        'id': Int.computed(),
        'name': String,
    }, label='name')

    author.has_many_through('books', book, 'authors', 'book_author')
    publisher.has_many('books', book, 'publisher')
    book.references_many('reviews', review, 'book')
    tag.references_many_through('books', book, 'tags', 'book_tag')
    return model.freeze() if freeze else model
