"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- CFDI catalogue values fixed for every invoice
- Step prompts for the invoice intake

(Prevents hardcoding across the codebase)
"""

# ============================================================
# INVOICE INTAKE PROMPTS (CFDI 4.0 minimum)
# ============================================================

ASK_RFC_MESSAGE = "Para facturar, comparte tu RFC (receptor)."
ASK_CP_MESSAGE = "¿Cuál es tu Código Postal fiscal (SAT)?"
ASK_REGIMEN_MESSAGE = "¿Tu régimen fiscal (clave, ej. 612/601/605)?"
ASK_NOMBRE_MESSAGE = "Nombre/Razón social EXACTO como en SAT."
ASK_USO_MESSAGE = "Uso CFDI (ej. G03)."
ASK_METODO_MESSAGE = "Método de pago (PUE o PPD)."
ASK_FORMA_MESSAGE = "Forma de pago SAT (01 Efectivo, 03 Transferencia, 04 TDC, etc.)."
ASK_DESCRIPCION_MESSAGE = "Descripción del servicio/venta."
ASK_IMPORTE_MESSAGE = "Importe SIN IVA (ej. 1008.62)."

# ============================================================
# FIELD KEYS
# ============================================================

FIELD_RFC = "rfc"
FIELD_CP = "cp"
FIELD_REGIMEN = "regimen"
FIELD_NOMBRE = "nombre"
FIELD_USO = "uso"
FIELD_METODO = "metodo"
FIELD_FORMA = "forma"
FIELD_DESCRIPCION = "descripcion"
FIELD_IMPORTE = "importe"

# ============================================================
# RESULT MESSAGES
# ============================================================

INVOICE_ISSUED_MESSAGE = """✅ Factura emitida.
UUID: {uuid}
Verificación SAT: {verification_url}"""

INVOICE_FAILED_MESSAGE = """❌ No pudimos emitir tu factura.

{reason}

Escribe *{keyword}* para comenzar de nuevo."""

REASON_BILLING_REJECTED = "El servicio de facturación rechazó la solicitud."
REASON_BILLING_UNAVAILABLE = "El servicio de facturación no respondió a tiempo."
REASON_MISSING_FIELDS = "Faltan datos: {fields}."
REASON_INVALID_AMOUNT = "El importe \"{value}\" no es un número válido."

# ============================================================
# CFDI CATALOGUE VALUES
# ============================================================

COUNTRY_CODE = "MEX"
CFDI_TYPE_INCOME = "I"
ITEM_QUANTITY = 1
PRODUCT_KEY = "80141600"   # Servicios profesionales
UNIT_KEY = "E48"           # Unidad de servicio
TAXABILITY = "01"
TAX_TYPE_IVA = "IVA"
IVA_RATE = 0.16
EXTERNAL_ID_PREFIX = "WA"
