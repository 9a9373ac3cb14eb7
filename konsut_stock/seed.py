"""Starter catalog used on first run and by the sample loader."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .models import CATEGORIES, Category, Number, StockItem

_SeedRow = Tuple[str, str, Number, Number, Number, Optional[str]]

_SEED_ROWS: Dict[Category, List[_SeedRow]] = {
    "products": [
        ("P1001", "Mono Perc Solar Panel (450W)", 50, 18500, 145, "High-efficiency monocrystalline solar panel"),
        ("P1002", "Victron MultiPlus-II 48/5000", 8, 245000, 1900, "48V Inverter/Charger 5000VA"),
        ("P1003", "SmartSolar MPPT 250/100", 15, 85000, 650, "Solar Max Power Point Tracker"),
        ("P1004", "LiFePO4 Lithium Battery (48V 100Ah)", 12, 165000, 1280, "Deep cycle lithium energy storage"),
        ("P1005", "Pylontech US3000C Battery Module", 10, 195000, 1500, "3.5kWh Li-ion Battery Module"),
        ("P1006", "Victron Cerbo GX", 20, 45000, 350, "System monitoring center"),
        ("P1007", "Victron Lynx Distributor", 25, 28000, 215, "Modular DC distribution system"),
        ("P1008", "Solar PV Cable (6mm²)", 1000, 150, 1.2, "UV resistant DC solar cable (per meter)"),
        ("P1009", "MC4 Solar Connectors (Pair)", 500, 250, 2, "Male/Female connector pair"),
        ("P1010", "12U Wall Mount Server Rack", 5, 12000, 95, "Network cabinet with glass door"),
        ("P1011", "Ubiquiti UniFi Access Point (WiFi 6)", 30, 22000, 170, "Long-range enterprise WiFi AP"),
        ("P1012", "Mikrotik Cloud Core Router", 4, 65000, 500, "High performance enterprise router"),
        ("P1013", "Agilon HF UPS 1kVA / 2kVA / 3kVA", 10, 45000, 350, "Online Double Conversion UPS"),
        ("P1014", "Cisco 24-Port Gigabit Switch", 6, 35000, 270, "Managed L2 switch"),
        ("P1015", "Cat6 Ethernet Cable (305m Box)", 20, 18000, 140, "Pure Copper UTP Cable"),
    ],
    "mobilization": [
        ("M2001", "Freight Charges", 1, 5000, 38, None),
        ("M2002", "Site Mobilization & Logistics (Local)", 1, 15000, 115, "Transport and setup costs within Nairobi"),
        ("M2003", "Site Mobilization & Logistics (Upcountry)", 1, 45000, 350, "Transport and setup costs outside Nairobi"),
        ("M2004", "Specialized Equipment Rental (Crane)", 1, 25000, 195, "Crane hire for panel lifting"),
        ("M2005", "Scaffolding Setup & Rental", 1, 12000, 95, "Per week rental"),
        ("M2006", "Technician Travel & Accommodation (Per Day)", 4, 8000, 60, "Per technician per day"),
        ("M2007", "Safety Gear & PPE Provision", 1, 5000, 40, "Safety compliance kit"),
        ("M2008", "Site Survey & Preliminary Assessment", 1, 10000, 80, "Initial site visit"),
        ("M2009", "Transport - Pickup Truck (Per Km)", 100, 100, 0.8, "Logistics cost per km"),
        ("M2010", "Transport - 3 Ton Truck (Per Km)", 100, 150, 1.2, "Heavy load transport per km"),
        ("M2011", "Generator Rental (Per Day)", 2, 8500, 65, "Backup power during installation"),
        ("M2012", "Network Tool Kit Mobilization", 1, 3000, 25, "Specialized networking tools"),
        ("M2013", "Fiber Splicing Kit Rental", 1, 5000, 40, "Fusion splicer daily rate"),
        ("M2014", "Post-Installation Cleanup", 1, 3000, 25, "Site cleaning and waste disposal"),
    ],
    "services": [
        ("S3001", "Solar System Installation (Labor)", 1, 25000, 195, "Professional installation labor charge"),
        ("S3002", "Network Infrastructure Setup (Labor)", 1, 35000, 270, "Cabling and configuration labor"),
        ("S3003", "Solar Power Audit & Consulting", 1, 15000, 115, "Energy needs assessment report"),
        ("S3004", "Annual Maintenance Contract (Solar)", 1, 50000, 385, "Preventive maintenance service per year"),
        ("S3005", "Annual Maintenance Contract (IT/Network)", 1, 120000, 920, "Comprehensive IT support per year"),
        ("S3006", "Fiber Optic Splicing & Termination", 24, 1500, 12, "Per core splicing charge"),
        ("S3007", "CCTV Camera Installation & Config", 8, 3500, 27, "Per camera installation"),
        ("S3008", "Access Control System Setup", 1, 18000, 140, "Biometric/Card reader config"),
        ("S3009", "Structured Cabling (Per Point)", 50, 2500, 20, "Cable pulling and termination"),
        ("S3010", "Server Room Configuration", 1, 45000, 350, "Rack mounting and cable management"),
        ("S3011", "Wi-Fi Site Survey & Heatmapping", 1, 20000, 155, "Coverage analysis report"),
        ("S3012", "Remote System Monitoring (Monthly)", 12, 5000, 40, "Victron VRM / Ubiquiti remote support"),
        ("S3013", "IT Support Retainer (Standard)", 12, 30000, 230, "Monthly support fee"),
        ("S3014", "Emergency Troubleshooting Call-out", 1, 10000, 80, "Urgent site visit fee"),
        ("S3015", "Firmware Update & Optimization", 1, 8000, 60, "System software upgrade"),
    ],
}


def seed_catalog() -> Dict[Category, List[StockItem]]:
    """Return a fresh copy of the starter catalog."""

    return {
        category: [
            StockItem(
                id=item_id,
                name=name,
                category=category,
                quantity=quantity,
                price_ksh=price_ksh,
                price_usd=price_usd,
                description=description,
            )
            for item_id, name, quantity, price_ksh, price_usd, description in _SEED_ROWS[category]
        ]
        for category in CATEGORIES
    }


__all__ = ["seed_catalog"]
