"""Catalogue of general objectives, their specific objectives and guided flows."""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class SpecificObjective:
    name: str
    flow_identifier: str


@dataclass(frozen=True)
class GeneralObjective:
    category: str
    specifics: Tuple[SpecificObjective, ...]


OBJECTIVES: Tuple[GeneralObjective, ...] = (
    GeneralObjective("Ahorro", (
        SpecificObjective("Fondo de Emergencia", "emergencyFundFlow"),
        SpecificObjective("Ahorro para la Jubilación", "retirementSavingsFlow"),
        SpecificObjective("Ahorro para la Entrada de una Vivienda", "housingDownPaymentFlow"),
        SpecificObjective("Ahorro para la Compra de un Vehículo", "vehicleSavingsFlow"),
        SpecificObjective("Ahorro para Viajes/Vacaciones", "travelSavingsFlow"),
        SpecificObjective("Ahorro para Educación", "educationSavingsFlow"),
        SpecificObjective("Ahorro para Inversiones", "investmentSavingsFlow"),
        SpecificObjective("Ahorro para Compras Importantes", "majorPurchaseFlow"),
        SpecificObjective("Ahorro para Eventos Especiales", "specialEventFlow"),
    )),
    GeneralObjective("Reducción y Gestión de Deuda", (
        SpecificObjective("Pagar Deudas de Tarjetas de Crédito", "creditCardDebtFlow"),
        SpecificObjective("Amortizar Préstamos Personales", "personalLoanDebtFlow"),
        SpecificObjective("Liquidar Préstamos Estudiantiles", "studentLoanDebtFlow"),
        SpecificObjective("Reducir la Hipoteca", "mortgageReductionFlow"),
        SpecificObjective("Consolidar Deudas", "debtConsolidationFlow"),
        SpecificObjective("Eliminar Deudas Pequeñas (Método Bola de Nieve o Avalancha)", "smallDebtsFlow"),
    )),
    GeneralObjective("Gestión de Gastos", (
        SpecificObjective("Crear y Seguir un Presupuesto Mensual", "budgetingFlow"),
        SpecificObjective("Reducir Gastos Hormiga", "reduceMicroExpensesFlow"),
        SpecificObjective("Disminuir Gasto en Categorías Específicas", "reduceSpecificExpensesFlow"),
        SpecificObjective("Optimizar Gastos Fijos", "optimizeFixedExpensesFlow"),
    )),
    GeneralObjective("Crecimiento Financiero", (
        SpecificObjective("Aumentar Ingresos", "increaseIncomeFlow"),
        SpecificObjective("Incrementar el Patrimonio Neto", "increaseNetWorthFlow"),
        SpecificObjective("Alcanzar la Independencia Financiera", "financialIndependenceFlow"),
    )),
)

DEFAULT_FLOW_IDENTIFIER = "defaultFallbackFlow"

_FLOWS: Dict[str, str] = {
    specific.name: specific.flow_identifier
    for general in OBJECTIVES
    for specific in general.specifics
}


def general_objective_names() -> List[str]:
    return [general.category for general in OBJECTIVES]


def get_flow_identifier(specific_objective: str) -> Optional[str]:
    """Flow identifier for a specific objective name, None when not catalogued."""
    return _FLOWS.get(specific_objective)


def specific_objective_options(general_objectives: Iterable[str]) -> List[SpecificObjective]:
    """Specific objectives offered for the selected general objectives, in catalogue order."""
    selected = set(general_objectives)
    return [
        specific
        for general in OBJECTIVES
        if general.category in selected
        for specific in general.specifics
    ]


def objective_for_flow(flow_identifier: str) -> Optional[str]:
    """Specific objective name handled by a flow identifier."""
    return next((name for name, flow in _FLOWS.items() if flow == flow_identifier), None)
