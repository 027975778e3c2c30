"""Demo catalog and tours with Vietnamese and English names.

Loaded by `tourdesk.seed.seed_database` into an empty store. Tour references
point at catalog records by name; allowances list the province they are paid
for as their name.
"""

SEED_CATALOG = {
    "guides": [
        {"name": "Cao Hữu Tú", "phone": "+84 907 000 111", "note": "VN/EN"},
        {"name": "Nguyễn Hồng Phúc", "phone": "+84 909 222 333", "note": "EN/IT"},
        {"name": "Trần Minh Anh", "phone": "+84 938 444 555", "note": "EN"},
    ],
    "companies": [
        {
            "name": "Asia Top Travel",
            "contact_name": "Ms. Lan",
            "phone": "+84 24 3777 8888",
            "email": "booking@asiatoptravel.vn",
        },
        {
            "name": "Tonkin Travel",
            "contact_name": "Mr. Huy",
            "phone": "+84 24 3888 6666",
            "email": "sales@tonkintravel.vn",
        },
        {
            "name": "GP Travel",
            "contact_name": "Ms. My",
            "phone": "+84 28 3555 9999",
            "email": "op@gptravel.vn",
        },
    ],
    "nationalities": [
        {"name": "Vietnam", "iso2": "VN", "emoji": "🇻🇳"},
        {"name": "Italy", "iso2": "IT", "emoji": "🇮🇹"},
        {"name": "Australia", "iso2": "AU", "emoji": "🇦🇺"},
        {"name": "United States", "iso2": "US", "emoji": "🇺🇸"},
        {"name": "France", "iso2": "FR", "emoji": "🇫🇷"},
    ],
    "provinces": [
        {"name": "Huế"},
        {"name": "Quảng Nam"},
        {"name": "Quảng Bình"},
        {"name": "Đà Nẵng"},
    ],
    "expense_categories": [
        {"name": "Vé tham quan"},
        {"name": "Nước uống"},
    ],
}

SEED_TOURS = [
    {
        "tour": {
            "tour_code": "AT-250901",
            "company": "Asia Top Travel",
            "guide": "Cao Hữu Tú",
            "client_nationality": "Italy",
            "client_name": "Mrs. Matilde Lamura",
            "adults": 8,
            "children": 0,
            "driver_name": "Mr Đức",
            "client_phone": "+39 348 470 4413",
            "start_date": "2025-08-20",
            "end_date": "2025-08-25",
        },
        "destinations": [
            {"name": "Đại Nội", "price": 0, "date": "2025-08-21"},
            {"name": "Lăng Tự Đức", "price": 0, "date": "2025-08-21"},
            {"name": "Hội An Ancient Town", "price": 0, "date": "2025-08-23"},
        ],
        "expenses": [
            {"name": "Nước suối", "price": 120000, "date": "2025-08-21"},
            {"name": "Khăn lạnh", "price": 80000, "date": "2025-08-21"},
        ],
        "meals": [
            {"name": "Ăn trưa La Chu", "price": 400000, "date": "2025-08-21"},
        ],
        "allowances": [
            {"name": "Huế", "price": 300000, "date": "2025-08-21"},
        ],
    },
    {
        "tour": {
            "tour_code": "TK-251010",
            "company": "Tonkin Travel",
            "guide": "Nguyễn Hồng Phúc",
            "client_nationality": "Australia",
            "client_name": "Mr. David Brown",
            "adults": 4,
            "children": 1,
            "driver_name": "Mr Hải",
            "client_phone": "+61 400 123 456",
            "start_date": "2025-10-10",
            "end_date": "2025-10-13",
        },
        "destinations": [
            {"name": "Phong Nha", "price": 0, "date": "2025-10-11"},
            {"name": "Thiên Đường", "price": 0, "date": "2025-10-11"},
            {"name": "Vĩnh Mốc", "price": 0, "date": "2025-10-12"},
        ],
        "expenses": [
            {"name": "Vé tham quan Phong Nha", "price": 1500000, "date": "2025-10-11"},
        ],
        "meals": [
            {"name": "Ăn tối Huế Tui", "price": 430000, "date": "2025-10-11"},
        ],
        "allowances": [
            {"name": "Quảng Bình", "price": 300000, "date": "2025-10-11"},
        ],
    },
]
