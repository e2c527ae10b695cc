"""Request bodies and records shared by the API tests"""


def booking_payload(**overrides):
    payload = {
        "vehicle_id": "group-e-sedan",
        "destination": "Tagaytay",
        "pick_up_address": "NAIA Terminal 3",
        "pick_up_date": "2025-03-01",
        "pick_up_time": "09:00",
        "return_address": "NAIA Terminal 3",
        "return_date": "2025-03-08",
        "return_time": "18:00",
        "drive_option": "self-drive",
    }
    payload.update(overrides)
    return payload


def booking_document(renter_id):
    """A bookings collection document as the app stores it"""
    return {
        "renterId": renter_id,
        "driveOption": "self-drive",
        "destination": "Baguio",
        "pickUpAddress": "Clark Airport",
        "pickUpDate": "2025-04-01",
        "pickUpTime": "08:00",
        "returnAddress": "Clark Airport",
        "returnDate": "2025-04-03",
        "returnTime": "17:00",
        "selectedVehicle": {
            "vehicleId": "group-d-hatchback",
            "name": "Group D - Hatchback (5 seater) M/T",
            "basePrice": 2200.0,
            "pricePerDay": 2145.0,
            "totalDuration": 2,
            "subtotalBeforeDiscounts": 4400.0,
            "totalDiscounts": 110.0,
            "totalAmount": 4290.0,
        },
        "payment": {"totalAmount": 4290.0, "paid": 0.0, "balance": 4290.0, "status": "unpaid"},
        "status": "processing",
        "extensions": [],
    }
