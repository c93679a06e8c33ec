"""Catalog blueprint - products, stock corrections and product types."""
from flask import Blueprint, request

from app.database import get_session
from app.exceptions import FieldError, ValidationError
from app.services import product_service
from app.utils.responses import json_body, success
from app.utils.serializers import product_to_dict, product_type_to_dict

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


@catalog_bp.route('/products', methods=['GET'])
def list_products():
    """Active products; ?in_stock=1 keeps only those with stock left."""
    in_stock_only = request.args.get('in_stock', '').lower() in ('1', 'true', 'yes')
    products = product_service.list_products(get_session(), in_stock_only=in_stock_only)
    return success([product_to_dict(p) for p in products])


@catalog_bp.route('/products', methods=['POST'])
def create_product():
    product = product_service.create_product(get_session(), json_body())
    return success(product_to_dict(product), 201)


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id: int):
    product = product_service.get_product(get_session(), product_id)
    return success(product_to_dict(product))


@catalog_bp.route('/products/<int:product_id>', methods=['PUT'])
def update_product(product_id: int):
    product = product_service.update_product(get_session(), product_id, json_body())
    return success(product_to_dict(product))


@catalog_bp.route('/products/<int:product_id>/stock', methods=['PATCH'])
def adjust_stock(product_id: int):
    payload = json_body()
    if 'stock' not in payload:
        raise ValidationError(FieldError('stock', 'Stock is required'))
    product = product_service.adjust_stock(get_session(), product_id, payload['stock'])
    return success(product_to_dict(product))


@catalog_bp.route('/products/<int:product_id>', methods=['DELETE'])
def delete_product(product_id: int):
    product_service.delete_product(get_session(), product_id)
    return success({'id': product_id}, message='Product deleted')


@catalog_bp.route('/product-types', methods=['GET'])
def list_product_types():
    types = product_service.list_product_types(get_session())
    return success([product_type_to_dict(t) for t in types])
