from fastapi import APIRouter, Depends
import logging
from app.services.order_service import OrderService, get_order_service
from app.utils.errors import ServiceError
from schema.order import OrderResponse, PlaceOrderInput

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("", response_model=OrderResponse)
@router.post("/", response_model=OrderResponse)
async def place_order(
    order_input: PlaceOrderInput,
    order_service: OrderService = Depends(get_order_service)
):
    try:
        logger.info(f"Order placement request for customer: {order_input.customerId}")

        order = await order_service.place_order(order_input)

        logger.info(f"Order created successfully with ID: {order['_id']}")
        return order

    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Create order error: {e}")
        raise ServiceError("Failed to create order") from e
