import datetime
import jwt
from flask import current_app, request
from flask_restx import Namespace, fields, Resource
from sqlalchemy.exc import IntegrityError
from .models import ROLES, User
from . import db, bcrypt, limiter
from .errors import Unauthorized, ValidationFailed
from functools import wraps

auth_ns = Namespace("auth", description="User registration and login")

register_model = auth_ns.model("Register", {
    "username": fields.String(required=True, description="Unique username"),
    "password": fields.String(required=True, description="Password"),
    "role": fields.String(required=True, enum=list(ROLES), description="Staff role"),
})

login_model = auth_ns.model("Login", {
    "username": fields.String(required=True, description="Registered username"),
    "password": fields.String(required=True, description="Password"),
})


def generate_token(user):
    return jwt.encode({
        "id": user.id,
        "exp": datetime.datetime.now(datetime.timezone.utc) + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    }, current_app.config["SECRET_KEY"], algorithm="HS256")


def token_required(f):
    """Decorator for protected routes; passes the authenticated user first."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme != "Bearer" or not token.strip():
            raise Unauthorized("Not authorized, no token")
        try:
            data = jwt.decode(token.strip(), current_app.config["SECRET_KEY"], algorithms=["HS256"])
        except jwt.InvalidTokenError:
            raise Unauthorized("Not authorized, token failed")
        user_id = data.get("id")
        current_user = db.session.get(User, user_id) if user_id is not None else None
        if not current_user:
            raise Unauthorized("Not authorized, token failed")
        return f(current_user, *args, **kwargs)
    return wrapper


def _auth_response(user):
    body = user.to_dict()
    body["token"] = generate_token(user)
    return body


@auth_ns.route("/register")
class Register(Resource):
    @auth_ns.expect(register_model, validate=True)
    def post(self):
        data = request.get_json()
        username = data["username"].strip()
        if not username or not data["password"]:
            raise ValidationFailed("Please enter all fields")
        if User.query.filter_by(username=username).first():
            raise ValidationFailed("User already exists")

        hashed_pw = bcrypt.generate_password_hash(data["password"]).decode("utf-8")
        user = User(username=username, password=hashed_pw, role=data["role"])
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ValidationFailed("User already exists")
        return _auth_response(user), 201


@auth_ns.route("/login")
class Login(Resource):
    @auth_ns.expect(login_model, validate=True)
    @limiter.limit(lambda: current_app.config["LOGIN_RATE_LIMIT"])
    def post(self):
        data = request.get_json()
        user = User.query.filter_by(username=data["username"].strip()).first()
        if not user or not bcrypt.check_password_hash(user.password, data["password"]):
            raise Unauthorized("Invalid credentials")
        return _auth_response(user), 200


@auth_ns.route("/profile")
class Profile(Resource):
    @token_required
    def get(current_user, self):
        return current_user.to_dict(), 200
