"""
Seed catalogue of Australian government datasets
Agencies, datasets, tags and relations used for demos and tests
"""

import logging
from dataclasses import replace
from typing import Dict, List

from tqdm import tqdm

from catalog.models import Agency, Dataset, DatasetRelation
from storage.database import DatabaseManager

logger = logging.getLogger(__name__)


AGENCIES = [
    Agency(
        id='abs',
        code='ABS',
        name='Australian Bureau of Statistics',
        description="Australia's official statistical organisation providing trusted official statistics "
                    "on a wide range of economic, social, population and environmental matters.",
        website='https://www.abs.gov.au'
    ),
    Agency(
        id='aihw',
        code='AIHW',
        name='Australian Institute of Health and Welfare',
        description="Australia's leading health and welfare statistics and information agency.",
        website='https://www.aihw.gov.au'
    ),
    Agency(
        id='doe',
        code='DoE',
        name='Department of Education, Skills and Employment',
        description="Leading Australia's skills and employment agenda.",
        website='https://www.dese.gov.au'
    )
]

DATASETS = [
    Dataset(
        id='abs-labour-force',
        name='Labour Force, Australia',
        description='Monthly labour force statistics including employment, unemployment, participation rates, '
                    'and hours worked. Key indicator for economic health and workforce trends.',
        agency_id='abs',
        collection_date='2024-01-01',
        frequency='monthly',
        accessibility='api',
        format='API',
        api_endpoint='https://api.data.abs.gov.au/data/ABS_LABOUR_FORCE/M1',
        download_url='https://www.abs.gov.au/statistics/labour/employment-and-unemployment/labour-force-australia',
        data_portal_url='https://www.abs.gov.au/statistics/labour/employment-and-unemployment/labour-force-australia',
        keywords=['employment', 'unemployment', 'labour force', 'participation rate',
                  'economic indicators', 'workforce trends'],
        domains=['labour', 'economy', 'inequality'],
        tags=['labour-market', 'workforce']
    ),
    Dataset(
        id='abs-census',
        name='Census of Population and Housing',
        description='Comprehensive count of population and housing characteristics across Australia, conducted '
                    'every 5 years. Includes demographic, employment, education, and housing data.',
        agency_id='abs',
        collection_date='2021-08-10',
        frequency='quinquennial',
        accessibility='public',
        format='data-cube',
        download_url='https://www.abs.gov.au/statistics/detailed-data/census',
        data_portal_url='https://www.abs.gov.au/census',
        keywords=['census', 'population', 'housing', 'demographics', 'employment', 'education',
                  'family composition'],
        domains=['population', 'housing', 'labour', 'education'],
        tags=['population', 'housing', 'education']
    ),
    Dataset(
        id='abs-household-income',
        name='Household Income and Wealth, Australia',
        description='Annual survey providing detailed information on household income distribution, wealth, '
                    'and economic inequality measures.',
        agency_id='abs',
        collection_date='2023-01-01',
        frequency='annual',
        accessibility='public',
        format='CSV',
        download_url='https://www.abs.gov.au/statistics/economy/finance/household-income-and-wealth-australia',
        data_portal_url='https://www.abs.gov.au/statistics/economy/finance/household-income-and-wealth-australia',
        keywords=['income', 'wealth', 'inequality', 'households', 'economic distribution', 'poverty',
                  'gini coefficient'],
        domains=['inequality', 'economy', 'housing'],
        tags=['inequality', 'housing']
    ),
    Dataset(
        id='aihw-aged-care-workforce',
        name='Aged Care Workforce Data',
        description='Comprehensive data on aged care workforce including staffing levels, qualifications, '
                    'turnover rates, and workforce projections.',
        agency_id='aihw',
        collection_date='2023-06-30',
        frequency='annual',
        accessibility='public',
        format='CSV',
        download_url='https://www.aihw.gov.au/reports/australias-welfare/aged-care-workforce',
        data_portal_url='https://www.aihw.gov.au/reports/australias-welfare/aged-care-workforce',
        keywords=['aged care', 'workforce', 'elderly care', 'nursing', 'carers', 'health workforce',
                  'ageing population'],
        domains=['health', 'ageing', 'labour'],
        tags=['aged-care', 'workforce', 'ageing', 'health']
    ),
    Dataset(
        id='aihw-population-projections',
        name='Population Projections, Australia',
        description="Projections of Australia's population by age, sex, and state/territory to 2071. "
                    "Essential for planning aged care, housing, and workforce needs.",
        agency_id='aihw',
        collection_date='2023-01-01',
        frequency='annual',
        accessibility='public',
        format='Excel',
        download_url='https://www.aihw.gov.au/reports/population/population-projections-australia',
        data_portal_url='https://www.aihw.gov.au/reports/population/population-projections-australia',
        keywords=['population projections', 'ageing', 'demographics', 'fertility', 'mortality', 'migration',
                  'regional population'],
        domains=['population', 'ageing', 'health'],
        tags=['population', 'ageing']
    ),
    Dataset(
        id='aihw-housing-homelessness',
        name='Housing and Homelessness Data',
        description='Specialist homelessness services data, housing assistance programs, and homelessness '
                    'estimates. Links housing affordability with social services.',
        agency_id='aihw',
        collection_date='2023-06-30',
        frequency='annual',
        accessibility='public',
        format='CSV',
        download_url='https://www.aihw.gov.au/reports/housing/housing-and-homelessness',
        data_portal_url='https://www.aihw.gov.au/reports/housing/housing-and-homelessness',
        keywords=['homelessness', 'housing assistance', 'social housing', 'affordable housing', 'rental stress',
                  'homeless services'],
        domains=['housing', 'health', 'inequality'],
        tags=['housing', 'health', 'inequality']
    ),
    Dataset(
        id='doe-skills-shortages',
        name='Skills and Employment Shortages',
        description='Annual report on skills shortages across industries and occupations. Identifies priority '
                    'skills needs and labour market gaps.',
        agency_id='doe',
        collection_date='2023-12-01',
        frequency='annual',
        accessibility='public',
        format='PDF',
        download_url='https://www.dese.gov.au/skills-and-employment-shortages',
        data_portal_url='https://www.dese.gov.au/skills-and-employment-shortages',
        keywords=['skills shortage', 'occupations', 'labour market', 'training needs', 'workforce planning',
                  'industry skills'],
        domains=['labour', 'education', 'skills'],
        tags=['skills', 'labour-market', 'workforce']
    ),
    Dataset(
        id='doe-apprenticeships',
        name='Apprenticeships and Traineeships',
        description='Data on apprenticeship and traineeship commencements, completions, and employment '
                    'outcomes. Tracks vocational education and training outcomes.',
        agency_id='doe',
        collection_date='2023-06-30',
        frequency='quarterly',
        accessibility='public',
        format='Excel',
        download_url='https://www.dese.gov.au/apprenticeships-and-traineeships',
        data_portal_url='https://www.dese.gov.au/apprenticeships-and-traineeships',
        keywords=['apprenticeships', 'traineeships', 'vocational education', 'employment outcomes',
                  'training completions', 'skilled workforce'],
        domains=['education', 'labour', 'skills'],
        tags=['education', 'skills', 'workforce']
    ),
    Dataset(
        id='doe-higher-education',
        name='Higher Education Statistics',
        description='Comprehensive data on higher education enrolments, completions, graduate outcomes, '
                    'and employment destinations.',
        agency_id='doe',
        collection_date='2023-01-01',
        frequency='annual',
        accessibility='public',
        format='data-cube',
        download_url='https://www.dese.gov.au/higher-education-statistics',
        data_portal_url='https://www.dese.gov.au/higher-education-statistics',
        keywords=['higher education', 'university', 'graduates', 'employment outcomes', 'enrolments',
                  'qualifications', 'graduate employment'],
        domains=['education', 'labour', 'skills'],
        tags=['education', 'skills', 'workforce']
    )
]

RELATIONS = [
    DatasetRelation(
        from_id='abs-labour-force',
        to_id='aihw-aged-care-workforce',
        relation_type='feeds-into',
        description='Labour force data provides context for aged care workforce planning and projections'
    ),
    DatasetRelation(
        from_id='abs-census',
        to_id='aihw-population-projections',
        relation_type='related-to',
        description='Census data forms the baseline for population projections and ageing analysis'
    ),
    DatasetRelation(
        from_id='abs-household-income',
        to_id='aihw-housing-homelessness',
        relation_type='related-to',
        description='Income data helps analyze housing affordability and homelessness patterns'
    ),
    DatasetRelation(
        from_id='doe-skills-shortages',
        to_id='abs-labour-force',
        relation_type='related-to',
        description='Skills shortage data complements labour force statistics for workforce analysis'
    ),
    DatasetRelation(
        from_id='aihw-aged-care-workforce',
        to_id='doe-skills-shortages',
        relation_type='depends-on',
        description='Aged care workforce needs inform skills shortage identification and training priorities'
    )
]


def seed_database(db: DatabaseManager, show_progress: bool = False) -> Dict[str, int]:
    """
    Load the seed catalogue into a database

    Safe to run repeatedly: agencies and datasets are upserted and
    relations are unique per (from, to, type).

    Args:
        db: Target database
        show_progress: Display a progress bar while storing datasets

    Returns:
        Counts of agencies, datasets and relations stored
    """
    counts = {'agencies': 0, 'datasets': 0, 'relations': 0}

    for agency in AGENCIES:
        if db.store_agency(agency):
            counts['agencies'] += 1

    for dataset in tqdm(_copies(DATASETS), desc='Seeding datasets', unit='dataset', disable=not show_progress):
        if db.store_dataset(dataset):
            counts['datasets'] += 1

    for relation in _copies(RELATIONS):
        if db.store_relation(relation):
            counts['relations'] += 1

    logger.info(f"Seeded {counts['agencies']} agencies, {counts['datasets']} datasets "
                f"and {counts['relations']} relations")
    return counts


def _copies(items: List) -> List:
    """Fresh instances so stores never mutate the module-level catalogue"""
    return [replace(item) for item in items]
