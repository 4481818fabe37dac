from flask import Blueprint, request, jsonify
from darts_league.app import db
from darts_league.models import Post
from darts_league.auth_utils import admin_required, get_optional_user
from darts_league.routes.helpers import clean_text, coerce_bool

posts_bp = Blueprint('posts', __name__)

POST_TYPES = {'news', 'announcement', 'tournament'}


def _apply_post_fields(post, data):
    if 'title' in data:
        post.title = clean_text(data['title'], 200)
    if 'content' in data:
        post.content = str(data['content'] or '').strip()
    if not post.title or not post.content:
        return 'Title and content are required'
    if 'excerpt' in data:
        post.excerpt = clean_text(data['excerpt'], 500) or None
    if 'image_url' in data:
        post.image_url = clean_text(data['image_url'], 500) or None
    if 'type' in data:
        post_type = clean_text(data['type'], 20).lower()
        if post_type not in POST_TYPES:
            return 'Type must be news, announcement or tournament'
        post.post_type = post_type
    if 'pinned' in data:
        post.pinned = coerce_bool(data['pinned'])
    if 'published' in data:
        post.published = coerce_bool(data['published'])
    return None


def _caller_is_admin():
    user = get_optional_user()
    return bool(user and user.is_admin)


@posts_bp.route('', methods=['GET'])
def list_posts():
    query = Post.query
    if not (coerce_bool(request.args.get('all')) and _caller_is_admin()):
        query = query.filter(Post.published.is_(True))
    post_type = request.args.get('type')
    if post_type:
        query = query.filter(Post.post_type == post_type)
    limit = request.args.get('limit', 50, type=int)
    posts = query.order_by(
        Post.pinned.desc(), Post.created_at.desc(), Post.id.desc(),
    ).limit(max(1, min(limit, 200))).all()
    return jsonify({'posts': [p.to_dict() for p in posts]})


@posts_bp.route('/<int:post_id>', methods=['GET'])
def get_post(post_id):
    post = db.session.get(Post, post_id)
    if not post or (not post.published and not _caller_is_admin()):
        return jsonify({'error': 'Post not found'}), 404
    return jsonify({'post': post.to_dict()})


@posts_bp.route('', methods=['POST'])
@admin_required
def create_post():
    post = Post(title='', content='', author_id=request.current_user.id)
    error = _apply_post_fields(post, request.get_json(silent=True) or {})
    if error:
        return jsonify({'error': error}), 400
    db.session.add(post)
    db.session.commit()
    return jsonify({'post': post.to_dict()}), 201


@posts_bp.route('/<int:post_id>', methods=['PUT'])
@admin_required
def update_post(post_id):
    post = db.session.get(Post, post_id)
    if not post:
        return jsonify({'error': 'Post not found'}), 404
    error = _apply_post_fields(post, request.get_json(silent=True) or {})
    if error:
        db.session.rollback()
        return jsonify({'error': error}), 400
    db.session.commit()
    return jsonify({'post': post.to_dict()})


@posts_bp.route('/<int:post_id>', methods=['DELETE'])
@admin_required
def delete_post(post_id):
    post = db.session.get(Post, post_id)
    if not post:
        return jsonify({'error': 'Post not found'}), 404
    db.session.delete(post)
    db.session.commit()
    return jsonify({'message': 'Post deleted'})
