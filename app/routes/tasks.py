from datetime import datetime
from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from app import db
from app.models.task import Task
from app.ownership import delete_owned, update_owned
from app.schemas import TaskCreate, TaskUpdate, load
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('tasks', __name__)


@bp.route('')
@login_required
def get_tasks():
    tasks = Task.query.filter_by(user_id=current_user.id).order_by(Task.created_at.desc()).all()
    return jsonify([task.to_dict() for task in tasks])


@bp.route('', methods=['POST'])
@login_required
def create_task():
    data = load(TaskCreate, request.get_json(silent=True))

    # Owner always comes from the credential, never from the body
    task = Task(user_id=current_user.id, **data.model_dump())
    db.session.add(task)
    db.session.commit()

    logger.info(f"Created task {task.id} for user {current_user.id}")
    return jsonify(task.to_dict()), 201


@bp.route('/<int:task_id>', methods=['PUT'])
@login_required
def update_task(task_id):
    data = load(TaskUpdate, request.get_json(silent=True))

    values = data.model_dump(exclude_unset=True)
    values['updated_at'] = datetime.utcnow()

    _, task = update_owned(Task, task_id, current_user, values, 'Task')
    db.session.commit()

    return jsonify(task.to_dict())


@bp.route('/<int:task_id>', methods=['DELETE'])
@login_required
def delete_task(task_id):
    delete_owned(Task, task_id, current_user, 'Task')
    db.session.commit()

    logger.info(f"Deleted task {task_id} for user {current_user.id}")
    return jsonify({'id': task_id, 'message': 'Task removed'})
