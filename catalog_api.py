#!/usr/bin/env python3
"""
Game catalog HTTP API - thin Flask glue over :class:`catalog.Catalog`.

Every route decodes the request, calls one service method with the cache
updaters of the shared ``Store`` and serialises the result.  Errors raised
by the core carry their own status code.
"""

import argparse
import logging
import os
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request

import catalog as catalog_module
from gamecatalog.errors import CatalogError, NotFound, ValidationError
from gamecatalog.identifiers import canonical_key

api_logger = logging.getLogger('gamecatalog.api')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _uploaded_file():
    """Return ``(bytes, extension)`` of the multipart ``file`` field."""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")
    ext = os.path.splitext(upload.filename)[1].lower()
    return upload.read(), ext


def create_app(catalog, api_token: Optional[str] = None) -> Flask:
    """Build the Flask app for *catalog* and warm its read cache.

    Args:
        catalog:   A :class:`catalog.Catalog`.
        api_token: When set, every request must carry it in the
                   ``X-Auth-Token`` header or the ``token`` query argument.
    """
    app = Flask(__name__)
    catalog.load_all()
    store = catalog.store

    def require_token(f):
        """Decorator to require the shared API token"""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if api_token:
                supplied = request.headers.get('X-Auth-Token') or request.args.get('token')
                if supplied != api_token:
                    return jsonify({'error': 'Unauthorized'}), 401
            return f(*args, **kwargs)
        return decorated_function

    @app.errorhandler(CatalogError)
    def handle_catalog_error(e: CatalogError):
        if e.status >= 500:
            api_logger.error("%s: %s", type(e).__name__, e.message)
        return jsonify({'error': e.message}), e.status

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    @app.route('/games', methods=['GET'])
    @require_token
    def list_games():
        return jsonify({'games': store.get('games')})

    @app.route('/games/<game_id>', methods=['GET'])
    @require_token
    def get_game(game_id):
        game = store.find('games', game_id)
        if game is None:
            raise NotFound("Game not found", id=game_id)
        return jsonify(game)

    @app.route('/games/add-from-igdb', methods=['POST'])
    @require_token
    def add_game():
        """Body JSON: already-normalised remote fields (``igdbId``, ``name``, ...)."""
        game = catalog.game_service.add_from_remote(
            _json_body(),
            update_cache=catalog.updater('games'),
            tag_cache_updaters=catalog.tag_updaters(),
        )
        for kind, url in (('cover', game.get('igdbCover')), ('background', game.get('igdbBackground'))):
            if url:
                catalog.media_service.download_asset(url, 'games', game['id'], kind)
        return jsonify({'status': 'success', 'game': game}), 201

    @app.route('/games/<game_id>', methods=['PUT'])
    @require_token
    def update_game(game_id):
        game = catalog.game_service.update(
            game_id, _json_body(),
            update_cache=catalog.updater('games'),
            tag_cache_updaters=catalog.tag_updaters(),
        )
        return jsonify({'status': 'success', 'game': game})

    @app.route('/games/<game_id>', methods=['DELETE'])
    @require_token
    def delete_game(game_id):
        result = catalog.delete_game(game_id)
        return jsonify({'status': 'success', **result})

    @app.route('/games/<game_id>/executables', methods=['POST'])
    @require_token
    def upload_executable(game_id):
        data, ext = _uploaded_file()
        game = catalog.game_service.save_executable(
            game_id, data, ext, request.form.get('label'),
            update_cache=catalog.updater('games'),
        )
        return jsonify({'status': 'success', 'executables': game['executables']})

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def _live_ids():
        return {canonical_key(g['id']) for g in store.get('games')}

    @app.route('/collections', methods=['GET'])
    @require_token
    def list_collections():
        live = _live_ids()
        summaries = [catalog.collection_service.summary(c, live)
                     for c in store.get('collections')]
        return jsonify({'collections': summaries})

    @app.route('/collections/<collection_id>', methods=['GET'])
    @require_token
    def get_collection(collection_id):
        collection = catalog.collection_service.get(collection_id)
        result = catalog.collection_service.summary(collection, _live_ids())
        result['games'] = catalog.collection_service.games_for(collection_id)
        return jsonify(result)

    @app.route('/collections', methods=['POST'])
    @require_token
    def create_collection():
        data = _json_body()
        collection = catalog.collection_service.create(
            data.get('title'), data.get('summary'),
            update_cache=catalog.updater('collections'),
        )
        return jsonify({'status': 'success',
                        'collection': catalog.collection_service.summary(collection, _live_ids())}), 201

    @app.route('/collections/<collection_id>', methods=['PUT'])
    @require_token
    def update_collection(collection_id):
        collection = catalog.collection_service.update(
            collection_id, _json_body(), update_cache=catalog.updater('collections'))
        return jsonify({'status': 'success',
                        'collection': catalog.collection_service.summary(collection, _live_ids())})

    @app.route('/collections/<collection_id>', methods=['DELETE'])
    @require_token
    def delete_collection(collection_id):
        catalog.collection_service.delete(collection_id, update_cache=catalog.updater('collections'))
        return jsonify({'status': 'success'})

    @app.route('/collections/<collection_id>/games', methods=['PUT'])
    @require_token
    def set_collection_games(collection_id):
        """Body JSON: {"gameIds": [...]}"""
        members = catalog.collection_service.set_membership(
            collection_id, _json_body().get('gameIds'),
            update_cache=catalog.updater('collections'),
        )
        return jsonify({'status': 'success', 'games': members, 'gameCount': len(members)})

    # ------------------------------------------------------------------
    # Recommended
    # ------------------------------------------------------------------

    @app.route('/recommended', methods=['GET'])
    @require_token
    def get_recommended():
        sections = catalog.recommended_repo.load()
        return jsonify({'recommended': sections.to_json() if sections is not None else []})

    # ------------------------------------------------------------------
    # Tags (one set of routes per kind)
    # ------------------------------------------------------------------

    for tag_service in catalog.tag_services.values():
        _register_tag_routes(app, catalog, tag_service, require_token)

    # ------------------------------------------------------------------
    # Cover / background assets
    # ------------------------------------------------------------------

    def _resource_id(resource_type, resource_id):
        try:
            repository = catalog.repository_for(resource_type)
        except KeyError:
            raise ValidationError(f"Invalid resource type: {resource_type}")
        return repository.get(resource_id)['id']

    @app.route('/<resource_type>/<resource_id>/<any(cover, background):kind>',
               methods=['POST'])
    @require_token
    def upload_asset(resource_type, resource_id, kind):
        data, ext = _uploaded_file()
        entity_id = _resource_id(resource_type, resource_id)
        catalog.media_service.save_asset(resource_type, entity_id, kind, data, ext)
        return jsonify({'status': 'success', kind: True})

    @app.route('/<resource_type>/<resource_id>/<any(cover, background):kind>',
               methods=['DELETE'])
    @require_token
    def delete_asset(resource_type, resource_id, kind):
        # no descriptor check: images may outlive a deleted entity
        deleted = catalog.media_service.delete_asset(resource_type, resource_id, kind)
        return jsonify({'status': 'success', 'deleted': deleted})

    api_logger.debug("API ready for %s", catalog.metadata_path)
    return app


def _register_tag_routes(app: Flask, catalog, service, require_token) -> None:
    """Add list/create/update/delete routes under ``/<folder>`` for one tag kind."""
    folder = service.kind.folder
    updater = catalog.updater

    @require_token
    def list_tags():
        tags = sorted(catalog.store.get(folder), key=lambda t: str(t.get('title', '')).casefold())
        return jsonify({folder: tags})

    @require_token
    def create_tag():
        title = service.create(_json_body().get('title'), update_cache=updater(folder))
        return jsonify({'status': 'success', 'title': title}), 201

    @require_token
    def update_tag(tag_id):
        title = service.repository.get(tag_id)['title']
        tag = service.update(title, _json_body(), update_cache=updater(folder))
        return jsonify({'status': 'success', 'tag': tag})

    @require_token
    def delete_tag(tag_id):
        title = service.repository.get(tag_id)['title']
        service.delete(title, catalog.store.get('games'), update_cache=updater(folder))
        return jsonify({'status': 'success'})

    endpoint = folder.replace('-', '_')
    app.add_url_rule(f'/{folder}', f'{endpoint}_list', list_tags, methods=['GET'])
    app.add_url_rule(f'/{folder}', f'{endpoint}_create', create_tag, methods=['POST'])
    app.add_url_rule(f'/{folder}/<int:tag_id>', f'{endpoint}_update', update_tag, methods=['PUT'])
    app.add_url_rule(f'/{folder}/<int:tag_id>', f'{endpoint}_delete', delete_tag, methods=['DELETE'])


def main():
    """Run the development server."""
    parser = argparse.ArgumentParser(description='Game catalog HTTP API')
    parser.add_argument('--config', '-c', default=None, help='Optional JSON config file')
    parser.add_argument('--host', default='127.0.0.1')
    parser.add_argument('--port', type=int, default=5000)
    args = parser.parse_args()

    config = catalog_module.load_config(args.config)
    catalog_module.setup_logging(config.get('log_level', 'WARNING'))
    app = create_app(catalog_module.Catalog(config['metadata_path']), config.get('api_token'))
    app.run(host=args.host, port=args.port)


if __name__ == '__main__':
    main()
