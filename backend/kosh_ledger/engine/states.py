"""GST state codes used as place of supply (pos) in GSTR-1."""
from typing import Optional

STATE_CODES: dict[str, str] = {
    "jammu and kashmir": "01",
    "himachal pradesh": "02",
    "punjab": "03",
    "chandigarh": "04",
    "uttarakhand": "05",
    "haryana": "06",
    "delhi": "07",
    "rajasthan": "08",
    "uttar pradesh": "09",
    "bihar": "10",
    "sikkim": "11",
    "arunachal pradesh": "12",
    "nagaland": "13",
    "manipur": "14",
    "mizoram": "15",
    "tripura": "16",
    "meghalaya": "17",
    "assam": "18",
    "west bengal": "19",
    "jharkhand": "20",
    "odisha": "21",
    "chhattisgarh": "22",
    "madhya pradesh": "23",
    "gujarat": "24",
    "dadra and nagar haveli and daman and diu": "26",
    "maharashtra": "27",
    "karnataka": "29",
    "goa": "30",
    "lakshadweep": "31",
    "kerala": "32",
    "tamil nadu": "33",
    "puducherry": "34",
    "andaman and nicobar islands": "35",
    "telangana": "36",
    "andhra pradesh": "37",
    "ladakh": "38",
    "other territory": "97",
}


def state_code(state: Optional[str]) -> Optional[str]:
    """Two-digit code for a state name (case-insensitive), None if unknown."""
    if not state:
        return None
    return STATE_CODES.get(" ".join(state.lower().replace("&", "and").split()))


def is_interstate(shop_state: str, party_state: Optional[str]) -> bool:
    """Supply crosses states; an unknown party state counts as the shop's own."""
    return shop_state.strip().lower() != (party_state or shop_state).strip().lower()
