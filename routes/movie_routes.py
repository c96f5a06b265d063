from flask import Blueprint, jsonify, request

from schemas import movie_schema, movies_schema
from services.movie_catalog import MovieCatalog

movie_bp = Blueprint("movie_api", __name__)


@movie_bp.route("/movies/all", methods=["GET"])
def list_movies():
    return jsonify({"movies": movies_schema.dump(MovieCatalog().list_all())})


@movie_bp.route("/movies/<title>", methods=["GET"])
def get_movie(title):
    return jsonify(movie_schema.dump(MovieCatalog().get_by_title(title)))


@movie_bp.route("/movies", methods=["POST"])
def add_movie():
    payload = movie_schema.load(request.get_json(silent=True) or {})
    movie = MovieCatalog().add(payload)
    return jsonify({"message": "Movie added", "movie": movie_schema.dump(movie)}), 201


@movie_bp.route("/movies/<title>", methods=["PUT"])
def update_movie(title):
    # Title is the lookup key and is never changed here
    payload = movie_schema.load(request.get_json(silent=True) or {}, partial=True)
    movie = MovieCatalog().update(title, payload)
    return jsonify({"message": "Movie updated", "movie": movie_schema.dump(movie)})


@movie_bp.route("/movies/<title>", methods=["DELETE"])
def delete_movie(title):
    MovieCatalog().delete(title)
    return jsonify({"message": "Movie removed", "title": title})
