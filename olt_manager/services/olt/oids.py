"""
Vendor-specific SNMP OID tables.

Numeric OIDs only; no MIB compilation is required. Optical power OIDs are
paired with the divisor that turns the raw integer into dBm.
"""

# ZTE C320 GPON (enterprise 3902.1012)
ZTE_GPON = {
    'base': '1.3.6.1.4.1.3902.1012',
    'phase_state': '1.3.6.1.4.1.3902.1012.3.28.1.1.2',  # 3=working, 2=los
    'mac_address': '1.3.6.1.4.1.3902.1012.3.28.1.1.3',
    'serial_number': '1.3.6.1.4.1.3902.1012.3.28.1.1.5',
    'distance': '1.3.6.1.4.1.3902.1012.3.28.2.1.5',  # metres
    'rx_power': '1.3.6.1.4.1.3902.1012.3.50.12.1.1.10',  # 0.01 dBm
    'tx_power': '1.3.6.1.4.1.3902.1012.3.50.12.1.1.9',  # 0.01 dBm
}
ZTE_POWER_DIVISOR = 100
ZTE_PHASE_WORKING = 3

# HIOSO EPON (BDCOM/CData compatible, enterprise 3320.101)
HIOSO_EPON = {
    'base': '1.3.6.1.4.1.3320.101',
    'online_status': '1.3.6.1.4.1.3320.101.11.4.1.5',  # 1=online, 2=offline
    'description': '1.3.6.1.4.1.3320.101.10.1.1.3',
    'mac_address': '1.3.6.1.4.1.3320.101.10.1.1.76',
    'rx_power': '1.3.6.1.4.1.3320.101.10.5.1.5',  # 0.1 dBm
    'tx_power': '1.3.6.1.4.1.3320.101.10.5.1.6',  # 0.1 dBm
}
HIOSO_POWER_DIVISOR = 10
HIOSO_STATUS_ONLINE = 1
