"""Customers blueprint."""
from flask import Blueprint, request

from app.database import get_session
from app.services import customer_service
from app.utils.responses import json_body, success
from app.utils.serializers import customer_to_dict

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['GET'])
def list_customers():
    customers = customer_service.list_customers(get_session(), search=request.args.get('q'))
    return success([customer_to_dict(c) for c in customers])


@customers_bp.route('', methods=['POST'])
def create_customer():
    customer = customer_service.create_customer(get_session(), json_body())
    return success(customer_to_dict(customer), 201)


@customers_bp.route('/<int:customer_id>', methods=['GET'])
def get_customer(customer_id: int):
    customer = customer_service.get_customer(get_session(), customer_id)
    return success(customer_to_dict(customer))


@customers_bp.route('/<int:customer_id>', methods=['PUT'])
def update_customer(customer_id: int):
    customer = customer_service.update_customer(get_session(), customer_id, json_body())
    return success(customer_to_dict(customer))


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
def delete_customer(customer_id: int):
    customer_service.delete_customer(get_session(), customer_id)
    return success({'id': customer_id}, message='Customer deleted')
