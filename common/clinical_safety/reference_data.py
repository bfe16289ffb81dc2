"""Seed clinical reference data.

These tables are a small curated dataset that lets the safety checks run end
to end. A production deployment loads an authoritative dataset into the
SQLite reference store instead (see ``SQLiteReferenceStore.load``).
"""

from .models import (
    AllergySeverity,
    ContraindicationSeverity,
    ContraindicationType,
    InteractionSeverity,
)

DATASET_VERSION = "seed-2026.1"


# Drug-drug interactions. Symmetric: drug_a/drug_b order carries no meaning.
DRUG_INTERACTIONS = [
    {
        "drug_a": "warfarin",
        "drug_b": "aspirin",
        "severity": InteractionSeverity.MAJOR,
        "description": "Increased risk of bleeding",
        "mechanism": "Additive anticoagulant and antiplatelet effects; aspirin also causes gastric mucosal injury",
        "recommendation": "Avoid unless specifically indicated (e.g. mechanical valve). Monitor INR and signs of bleeding closely.",
        "evidence_level": "A",
    },
    {
        "drug_a": "warfarin",
        "drug_b": "ibuprofen",
        "severity": InteractionSeverity.MAJOR,
        "description": "Increased risk of gastrointestinal bleeding",
        "mechanism": "NSAID antiplatelet effect and GI mucosal injury on top of anticoagulation",
        "recommendation": "Prefer acetaminophen for analgesia. If NSAID required, use lowest dose with gastroprotection.",
        "evidence_level": "A",
    },
    {
        "drug_a": "warfarin",
        "drug_b": "rifampin",
        "severity": InteractionSeverity.MAJOR,
        "description": "Markedly reduced anticoagulant effect",
        "mechanism": "Rifampin induces CYP2C9, increasing warfarin metabolism",
        "recommendation": "Monitor INR closely; warfarin dose often needs 2-3 fold increase. Re-titrate when rifampin stopped.",
        "evidence_level": "A",
    },
    {
        "drug_a": "warfarin",
        "drug_b": "acetaminophen",
        "severity": InteractionSeverity.MINOR,
        "description": "Possible INR elevation with regular use above 2 g/day",
        "mechanism": "Interference with vitamin K dependent clotting factor synthesis",
        "recommendation": "Occasional use is acceptable. Monitor INR with sustained use.",
        "evidence_level": "B",
    },
    {
        "drug_a": "linezolid",
        "drug_b": "sertraline",
        "severity": InteractionSeverity.CRITICAL,
        "description": "Risk of serotonin syndrome",
        "mechanism": "Linezolid is a reversible MAO inhibitor; SSRIs increase synaptic serotonin",
        "recommendation": "Avoid combination. If unavoidable, monitor closely for hyperthermia, rigidity and confusion.",
        "evidence_level": "A",
    },
    {
        "drug_a": "meropenem",
        "drug_b": "valproic acid",
        "severity": InteractionSeverity.CRITICAL,
        "description": "Loss of seizure control",
        "mechanism": "Carbapenems reduce valproic acid serum concentrations by 50-100%",
        "recommendation": "Avoid combination. Choose an alternative antibiotic or antiepileptic.",
        "evidence_level": "A",
    },
    {
        "drug_a": "sildenafil",
        "drug_b": "nitroglycerin",
        "severity": InteractionSeverity.CRITICAL,
        "description": "Profound hypotension",
        "mechanism": "Additive cGMP-mediated vasodilation",
        "recommendation": "Contraindicated combination. Do not give nitrates within 24 hours of sildenafil.",
        "evidence_level": "A",
    },
    {
        "drug_a": "simvastatin",
        "drug_b": "clarithromycin",
        "severity": InteractionSeverity.MAJOR,
        "description": "Increased risk of myopathy and rhabdomyolysis",
        "mechanism": "Clarithromycin strongly inhibits CYP3A4, raising simvastatin exposure",
        "recommendation": "Hold simvastatin during clarithromycin therapy or use azithromycin.",
        "evidence_level": "A",
    },
    {
        "drug_a": "digoxin",
        "drug_b": "amiodarone",
        "severity": InteractionSeverity.MAJOR,
        "description": "Digoxin toxicity",
        "mechanism": "Amiodarone inhibits P-glycoprotein and renal clearance of digoxin",
        "recommendation": "Reduce digoxin dose by 50% when starting amiodarone and monitor levels.",
        "evidence_level": "A",
    },
    {
        "drug_a": "methotrexate",
        "drug_b": "trimethoprim",
        "severity": InteractionSeverity.MAJOR,
        "description": "Bone marrow suppression",
        "mechanism": "Additive antifolate effect and reduced renal methotrexate clearance",
        "recommendation": "Avoid combination. Monitor CBC if co-administration cannot be avoided.",
        "evidence_level": "B",
    },
    {
        "drug_a": "lisinopril",
        "drug_b": "spironolactone",
        "severity": InteractionSeverity.MODERATE,
        "description": "Risk of hyperkalemia",
        "mechanism": "Both agents reduce potassium excretion",
        "recommendation": "Monitor serum potassium and renal function within 1 week of starting.",
        "evidence_level": "B",
    },
    {
        "drug_a": "lisinopril",
        "drug_b": "potassium chloride",
        "severity": InteractionSeverity.MODERATE,
        "description": "Risk of hyperkalemia",
        "mechanism": "ACE inhibition reduces aldosterone-mediated potassium excretion",
        "recommendation": "Monitor serum potassium; avoid routine supplementation.",
        "evidence_level": "B",
    },
    {
        "drug_a": "clopidogrel",
        "drug_b": "omeprazole",
        "severity": InteractionSeverity.MODERATE,
        "description": "Reduced antiplatelet effect",
        "mechanism": "Omeprazole inhibits CYP2C19 activation of clopidogrel",
        "recommendation": "Prefer pantoprazole if a PPI is needed.",
        "evidence_level": "B",
    },
    {
        "drug_a": "ciprofloxacin",
        "drug_b": "tizanidine",
        "severity": InteractionSeverity.CRITICAL,
        "description": "Severe hypotension and sedation",
        "mechanism": "Ciprofloxacin inhibits CYP1A2, increasing tizanidine levels about 10-fold",
        "recommendation": "Contraindicated combination.",
        "evidence_level": "A",
    },
    {
        "drug_a": "metformin",
        "drug_b": "iohexol",
        "severity": InteractionSeverity.MODERATE,
        "description": "Risk of lactic acidosis after iodinated contrast",
        "mechanism": "Contrast-induced nephropathy reduces metformin clearance",
        "recommendation": "Hold metformin at the time of contrast and for 48 hours after in patients with eGFR < 60.",
        "evidence_level": "B",
    },
]


# Drug class membership
DRUG_CLASSES = {
    "penicillin": [
        "penicillin", "amoxicillin", "ampicillin", "piperacillin",
        "oxacillin", "nafcillin", "dicloxacillin",
    ],
    "cephalosporin": [
        "cefazolin", "cephalexin", "cefuroxime", "ceftriaxone",
        "ceftazidime", "cefepime", "ceftaroline",
    ],
    "carbapenem": ["meropenem", "imipenem", "ertapenem"],
    "monobactam": ["aztreonam"],
    "sulfonamide": ["sulfamethoxazole", "sulfadiazine", "sulfasalazine"],
    "fluoroquinolone": ["ciprofloxacin", "levofloxacin", "moxifloxacin"],
    "macrolide": ["azithromycin", "clarithromycin", "erythromycin"],
    "glycopeptide": ["vancomycin"],
    "ace-inhibitor": ["lisinopril", "enalapril", "ramipril", "captopril"],
    "arb": ["losartan", "valsartan", "irbesartan"],
    "statin": ["simvastatin", "atorvastatin", "rosuvastatin", "pravastatin"],
    "nsaid": ["ibuprofen", "naproxen", "diclofenac", "ketorolac", "aspirin"],
    "anticoagulant": ["warfarin", "apixaban", "rivaroxaban", "heparin"],
    "beta-blocker": ["propranolol", "metoprolol", "atenolol", "carvedilol"],
    "ssri": ["sertraline", "fluoxetine", "citalopram", "escitalopram", "paroxetine"],
    "biguanide": ["metformin"],
    "cardiac-glycoside": ["digoxin"],
}

# Name fragments used to infer a class when a drug is missing from DRUG_CLASSES.
CLASS_NAME_PATTERNS = [
    ("cillin", "penicillin", "suffix"),
    ("cef", "cephalosporin", "prefix"),
    ("ceph", "cephalosporin", "prefix"),
    ("penem", "carbapenem", "suffix"),
    ("sulfa", "sulfonamide", "prefix"),
    ("floxacin", "fluoroquinolone", "suffix"),
    ("thromycin", "macrolide", "suffix"),
    ("pril", "ace-inhibitor", "suffix"),
    ("sartan", "arb", "suffix"),
    ("statin", "statin", "suffix"),
    ("olol", "beta-blocker", "suffix"),
]


# Cross-reactivity between an allergen's class and a medication's class
CROSS_REACTIVITY_RULES = [
    {
        "allergy_class": "penicillin",
        "cross_reactive_class": "cephalosporin",
        "severity": AllergySeverity.MODERATE,
        "severity_if_life_threatening": AllergySeverity.LIFE_THREATENING,
        "risk_percentage": 2.0,
        "description": "Penicillin allergy with potential cross-reactivity to cephalosporins",
        "recommendation": "Acceptable if prior reaction was not severe. Prefer dissimilar side chains or allergy consult after anaphylaxis.",
    },
    {
        "allergy_class": "penicillin",
        "cross_reactive_class": "carbapenem",
        "severity": AllergySeverity.MILD,
        "severity_if_life_threatening": AllergySeverity.SEVERE,
        "risk_percentage": 1.0,
        "description": "Penicillin allergy with low risk cross-reactivity to carbapenems",
        "recommendation": "Generally safe unless prior severe or anaphylactic reaction.",
    },
    {
        "allergy_class": "cephalosporin",
        "cross_reactive_class": "penicillin",
        "severity": AllergySeverity.MODERATE,
        "severity_if_life_threatening": AllergySeverity.LIFE_THREATENING,
        "risk_percentage": 2.0,
        "description": "Cephalosporin allergy with potential cross-reactivity to penicillins",
        "recommendation": "Review prior reaction; consider allergy consult.",
    },
    {
        "allergy_class": "cephalosporin",
        "cross_reactive_class": "carbapenem",
        "severity": AllergySeverity.MILD,
        "severity_if_life_threatening": AllergySeverity.SEVERE,
        "risk_percentage": 1.0,
        "description": "Cephalosporin allergy with low risk cross-reactivity to carbapenems",
        "recommendation": "Generally safe; monitor during first dose.",
    },
    {
        "allergy_class": "ace-inhibitor",
        "cross_reactive_class": "arb",
        "severity": AllergySeverity.MODERATE,
        "severity_if_life_threatening": AllergySeverity.SEVERE,
        "risk_percentage": 10.0,
        "description": "ACE inhibitor angioedema history with angiotensin receptor blocker",
        "recommendation": "Use with caution after ACE inhibitor angioedema; monitor for recurrence.",
    },
]


# Default severities and alternatives for common allergens
ALLERGEN_PROFILES = {
    "penicillin": {
        "default_severity": AllergySeverity.SEVERE,
        "alternatives": ["azithromycin", "doxycycline", "vancomycin"],
    },
    "sulfonamide": {
        "default_severity": AllergySeverity.MODERATE,
        "alternatives": ["nitrofurantoin", "fosfomycin"],
    },
    "aspirin": {
        "default_severity": AllergySeverity.SEVERE,
        "alternatives": ["acetaminophen"],
    },
    "nsaid": {
        "default_severity": AllergySeverity.MODERATE,
        "alternatives": ["acetaminophen"],
    },
    "cephalosporin": {
        "default_severity": AllergySeverity.SEVERE,
        "alternatives": ["aztreonam", "vancomycin"],
    },
}


# Medication-condition contraindications. "medication" may be a drug or a drug
# class; conditions match on ICD-10 prefix or a name keyword.
CONTRAINDICATIONS = [
    {
        "medication": "metformin",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Severe chronic kidney disease",
        "condition_codes": ["N18.5", "N18.6"],
        "condition_keywords": ["end stage renal", "esrd", "ckd stage 5"],
        "description": "Metformin is contraindicated with eGFR below 30 mL/min",
        "clinical_rationale": "Accumulation increases the risk of life-threatening lactic acidosis",
        "alternatives": ["linagliptin", "insulin"],
        "recommendation": "Do not administer. Select a glucose-lowering agent without renal elimination.",
    },
    {
        "medication": "ace-inhibitor",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Pregnancy",
        "condition_codes": ["Z33", "O09"],
        "condition_keywords": ["pregnan"],
        "description": "ACE inhibitors are contraindicated in pregnancy",
        "clinical_rationale": "Fetotoxic in the second and third trimesters (renal dysgenesis, oligohydramnios)",
        "alternatives": ["labetalol", "nifedipine", "methyldopa"],
        "recommendation": "Do not administer. Use a pregnancy-compatible antihypertensive.",
    },
    {
        "medication": "arb",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Pregnancy",
        "condition_codes": ["Z33", "O09"],
        "condition_keywords": ["pregnan"],
        "description": "Angiotensin receptor blockers are contraindicated in pregnancy",
        "clinical_rationale": "Fetotoxic in the second and third trimesters",
        "alternatives": ["labetalol", "nifedipine"],
        "recommendation": "Do not administer. Use a pregnancy-compatible antihypertensive.",
    },
    {
        "medication": "methotrexate",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Pregnancy",
        "condition_codes": ["Z33", "O09"],
        "condition_keywords": ["pregnan"],
        "description": "Methotrexate is teratogenic",
        "clinical_rationale": "Causes fetal death and congenital anomalies",
        "alternatives": [],
        "recommendation": "Do not administer.",
    },
    {
        "medication": "statin",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.SEVERE,
        "condition": "Active liver disease",
        "condition_codes": ["K72", "K70.4"],
        "condition_keywords": ["hepatic failure", "liver failure"],
        "description": "Statins are contraindicated in active liver disease or decompensated cirrhosis",
        "clinical_rationale": "Risk of further hepatotoxicity",
        "alternatives": ["ezetimibe"],
        "recommendation": "Do not administer until hepatic function is reviewed.",
    },
    {
        "medication": "nsaid",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Active gastrointestinal bleeding",
        "condition_codes": ["K92.2", "K25.0", "K26.0"],
        "condition_keywords": ["gi bleed", "gastrointestinal hemorrhage"],
        "description": "NSAIDs are contraindicated with active GI bleeding",
        "clinical_rationale": "Antiplatelet effect and mucosal injury worsen hemorrhage",
        "alternatives": ["acetaminophen"],
        "recommendation": "Do not administer.",
    },
    {
        "medication": "nsaid",
        "type": ContraindicationType.RELATIVE,
        "severity": ContraindicationSeverity.SEVERE,
        "condition": "Chronic kidney disease",
        "condition_codes": ["N18"],
        "condition_keywords": ["chronic kidney disease", "renal insufficiency"],
        "description": "NSAIDs may worsen renal function",
        "clinical_rationale": "Inhibition of renal prostaglandins reduces glomerular perfusion",
        "alternatives": ["acetaminophen"],
        "recommendation": "Avoid if possible; if required use shortest course and monitor creatinine.",
    },
    {
        "medication": "nsaid",
        "type": ContraindicationType.RELATIVE,
        "severity": ContraindicationSeverity.MODERATE,
        "condition": "Heart failure",
        "condition_codes": ["I50"],
        "condition_keywords": ["heart failure"],
        "description": "NSAIDs promote sodium and fluid retention",
        "clinical_rationale": "May precipitate heart failure decompensation",
        "alternatives": ["acetaminophen"],
        "recommendation": "Avoid routine use; monitor weight and fluid status.",
    },
    {
        "medication": "beta-blocker",
        "type": ContraindicationType.RELATIVE,
        "severity": ContraindicationSeverity.SEVERE,
        "condition": "Asthma",
        "condition_codes": ["J45"],
        "condition_keywords": ["asthma"],
        "description": "Non-selective beta-blockers may provoke bronchospasm",
        "clinical_rationale": "Beta-2 blockade opposes bronchodilation",
        "alternatives": ["diltiazem", "verapamil"],
        "recommendation": "Prefer a cardioselective agent at low dose with monitoring.",
    },
    {
        "medication": "fluoroquinolone",
        "type": ContraindicationType.RELATIVE,
        "severity": ContraindicationSeverity.SEVERE,
        "condition": "Myasthenia gravis",
        "condition_codes": ["G70.0"],
        "condition_keywords": ["myasthenia"],
        "description": "Fluoroquinolones may exacerbate muscle weakness in myasthenia gravis",
        "clinical_rationale": "Neuromuscular blocking activity",
        "alternatives": ["beta-lactam based regimen"],
        "recommendation": "Avoid; use an alternative antibiotic class.",
    },
    {
        "medication": "warfarin",
        "type": ContraindicationType.ABSOLUTE,
        "severity": ContraindicationSeverity.CRITICAL,
        "condition": "Active bleeding",
        "condition_codes": ["R58", "K92.2", "I61"],
        "condition_keywords": ["active bleeding", "hemorrhage"],
        "description": "Anticoagulation is contraindicated during active bleeding",
        "clinical_rationale": "Prevents hemostasis and risks fatal hemorrhage",
        "alternatives": [],
        "recommendation": "Do not administer. Consider reversal if already anticoagulated.",
    },
]


# Adult dose ranges. Single-dose thresholds are per administration; daily
# thresholds are per 24 hours. Renal tiers are (gfr_below, max_factor).
DOSE_RANGES = {
    "acetaminophen": {
        "unit": "mg",
        "min": 325,
        "max": 1000,
        "max_daily": 4000,
        "toxic": 7500,
        "geriatric_reduction_pct": 25,
        "renal": [(30, 0.75)],
        "hepatic": {"mild": 0.75, "moderate": 0.5, "severe": 0.5},
        "monitoring": ["Liver function tests with prolonged use"],
    },
    "amoxicillin": {
        "unit": "mg",
        "min": 250,
        "max": 1000,
        "max_daily": 4000,
        "toxic": 8000,
        "renal": [(30, 0.5), (10, 0.25)],
        "monitoring": [],
    },
    "aspirin": {
        "unit": "mg",
        "min": 75,
        "max": 1000,
        "max_daily": 4000,
        "toxic": 10000,
        "geriatric_reduction_pct": 25,
        "monitoring": ["Signs of bleeding"],
    },
    "ibuprofen": {
        "unit": "mg",
        "min": 200,
        "max": 800,
        "max_daily": 3200,
        "toxic": 6400,
        "geriatric_reduction_pct": 25,
        "renal": [(30, 0.5)],
        "monitoring": ["Renal function", "Signs of GI bleeding"],
    },
    "metformin": {
        "unit": "mg",
        "min": 500,
        "max": 1000,
        "max_daily": 2550,
        "toxic": 5000,
        "renal": [(45, 0.5)],
        "monitoring": ["Renal function", "Vitamin B12 annually"],
    },
    "warfarin": {
        "unit": "mg",
        "min": 1,
        "max": 10,
        "max_daily": 10,
        "toxic": 50,
        "geriatric_reduction_pct": 25,
        "hepatic": {"moderate": 0.5, "severe": 0.5},
        "monitoring": ["INR within 3-5 days of any dose change"],
    },
    "lisinopril": {
        "unit": "mg",
        "min": 2.5,
        "max": 40,
        "max_daily": 80,
        "toxic": 400,
        "renal": [(30, 0.5)],
        "monitoring": ["Serum potassium", "Serum creatinine"],
    },
    "digoxin": {
        "unit": "mcg",
        "min": 62.5,
        "max": 250,
        "max_daily": 250,
        "toxic": 1000,
        "geriatric_reduction_pct": 50,
        "renal": [(50, 0.5), (10, 0.25)],
        "monitoring": ["Serum digoxin level", "Serum potassium"],
    },
    "simvastatin": {
        "unit": "mg",
        "min": 5,
        "max": 40,
        "max_daily": 40,
        "toxic": 400,
        "hepatic": {"mild": 0.5},
        "monitoring": ["CK if muscle symptoms"],
    },
    "vancomycin": {
        "unit": "mg",
        "min": 500,
        "max": 2000,
        "max_daily": 4000,
        "toxic": 6000,
        "renal": [(50, 0.5), (20, 0.25)],
        "monitoring": ["Vancomycin AUC or trough", "Serum creatinine"],
    },
}


# Clinical practice guidelines. ``icd_codes`` are ICD-10 prefixes; therapy
# entries are matched by medication name.
CLINICAL_GUIDELINES = [
    {
        "id": "ada-t2dm-pharmacologic",
        "title": "Pharmacologic Approaches to Glycemic Treatment",
        "condition": "Type 2 diabetes mellitus",
        "icd_codes": ["E11"],
        "summary": "Start metformin at diagnosis unless contraindicated; add an SGLT2 inhibitor "
                   "or GLP-1 receptor agonist with established cardiovascular or kidney disease.",
        "evidence_level": "A",
        "strength": "strong",
        "first_line": ["metformin"],
        "second_line": ["empagliflozin", "linagliptin", "insulin"],
        "category": "endocrine",
        "source": "ADA Standards of Care",
        "last_reviewed": "2025-01-01",
    },
    {
        "id": "acc-aha-hypertension",
        "title": "Management of High Blood Pressure in Adults",
        "condition": "Essential hypertension",
        "icd_codes": ["I10"],
        "summary": "Initiate a thiazide diuretic, ACE inhibitor, ARB or calcium channel blocker; "
                   "target below 130/80 mmHg for most adults.",
        "evidence_level": "A",
        "strength": "strong",
        "first_line": ["lisinopril", "enalapril", "losartan", "valsartan", "amlodipine", "hydrochlorothiazide"],
        "second_line": ["spironolactone", "metoprolol", "carvedilol"],
        "category": "cardiovascular",
        "source": "ACC/AHA",
        "last_reviewed": "2025-08-01",
    },
    {
        "id": "acc-aha-af-anticoagulation",
        "title": "Stroke Prevention in Atrial Fibrillation",
        "condition": "Atrial fibrillation",
        "icd_codes": ["I48"],
        "summary": "Anticoagulate when CHA2DS2-VASc indicates; prefer a direct oral anticoagulant "
                   "over warfarin except with mechanical valves or moderate-severe mitral stenosis.",
        "evidence_level": "A",
        "strength": "strong",
        "first_line": ["apixaban", "rivaroxaban"],
        "second_line": ["warfarin"],
        "category": "cardiovascular",
        "source": "ACC/AHA/HRS",
        "last_reviewed": "2023-11-30",
    },
    {
        "id": "hfref-gdmt",
        "title": "Guideline-Directed Medical Therapy for HFrEF",
        "condition": "Heart failure with reduced ejection fraction",
        "icd_codes": ["I50.2", "I50.4"],
        "summary": "Combine an ACE inhibitor, ARB or ARNI with an evidence-based beta-blocker, "
                   "a mineralocorticoid receptor antagonist and an SGLT2 inhibitor.",
        "evidence_level": "A",
        "strength": "strong",
        "first_line": ["lisinopril", "enalapril", "carvedilol", "metoprolol", "spironolactone", "empagliflozin"],
        "second_line": ["losartan", "valsartan", "digoxin"],
        "category": "cardiovascular",
        "source": "AHA/ACC/HFSA",
        "last_reviewed": "2022-04-01",
    },
    {
        "id": "kdigo-ckd-bp",
        "title": "Blood Pressure Management in Chronic Kidney Disease",
        "condition": "Chronic kidney disease",
        "icd_codes": ["N18"],
        "summary": "Use an ACE inhibitor or ARB for albuminuria; add an SGLT2 inhibitor when eGFR "
                   "allows. Review renally cleared drugs at every stage change.",
        "evidence_level": "B",
        "strength": "strong",
        "first_line": ["lisinopril", "losartan"],
        "second_line": ["empagliflozin"],
        "category": "renal",
        "source": "KDIGO",
        "last_reviewed": "2024-03-01",
    },
    {
        "id": "cap-outpatient",
        "title": "Empiric Treatment of Community-Acquired Pneumonia",
        "condition": "Pneumonia",
        "icd_codes": ["J18", "J15"],
        "summary": "Outpatients without comorbidity: amoxicillin or doxycycline, or a macrolide "
                   "where pneumococcal resistance is low. Reserve fluoroquinolones.",
        "evidence_level": "B",
        "strength": "strong",
        "first_line": ["amoxicillin", "doxycycline", "azithromycin"],
        "second_line": ["levofloxacin", "moxifloxacin"],
        "category": "infectious-disease",
        "source": "ATS/IDSA",
        "last_reviewed": "2025-05-01",
    },
    {
        "id": "mdd-pharmacotherapy",
        "title": "Pharmacotherapy for Major Depressive Disorder",
        "condition": "Major depressive disorder",
        "icd_codes": ["F32", "F33"],
        "summary": "Offer an SSRI as initial pharmacotherapy; reassess response at 4-6 weeks.",
        "evidence_level": "B",
        "strength": "conditional",
        "first_line": ["sertraline", "escitalopram", "fluoxetine", "citalopram"],
        "second_line": ["paroxetine"],
        "category": "psychiatry",
        "source": "APA",
        "last_reviewed": "2024-09-01",
    },
    {
        "id": "hypertension-pregnancy",
        "title": "Chronic Hypertension in Pregnancy",
        "condition": "Hypertension in pregnancy",
        "icd_codes": ["O10", "O13", "O16"],
        "summary": "Treat to below 140/90 mmHg with labetalol or nifedipine; ACE inhibitors and "
                   "ARBs are contraindicated.",
        "evidence_level": "B",
        "strength": "strong",
        "first_line": ["labetalol", "nifedipine"],
        "second_line": ["methyldopa"],
        "category": "obstetrics",
        "source": "ACOG",
        "last_reviewed": "2024-06-01",
    },
]
