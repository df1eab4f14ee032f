import pandas as pd

DESIGN_COLUMNS = ['trialIndex', 'blockIndex', 'trialIndexInBlock', 'isInstructionNegated',
                  'sequenceLength', 'rank', 'soa', 'probeLeft']


def trials_to_frame(trials):
    """
    Tabulate a generated trial list, metadata columns first
    """
    df = pd.DataFrame(list(trials))
    leading = [c for c in DESIGN_COLUMNS if c in df.columns]
    return df[leading + [c for c in df.columns if c not in leading]]


def is_response_correct(soa, response):
    """
    A negative SOA means the probe flashed first, a positive one the reference;
    at SOA 0 both answers count as correct
    """
    soa = float(soa)
    return (soa <= 0 and response == 'probe') or (soa >= 0 and response == 'reference')


def trial_list_to_experiment_data(trial_sequence, trial_type='toj-negation'):
    """
    Parse a trial sequence (from jsPsych) into design and response variables

    design variables: trialIndex, blockIndex, isInstructionNegated, sequenceLength, rank, soa, probeLeft
    responses: response, rt, accuracy
    """

    # define dictionary to store the results
    results_dict = {column: [] for column in DESIGN_COLUMNS if column != 'trialIndexInBlock'}
    results_dict.update({'response': [], 'rt': [], 'accuracy': []})

    for trial in trial_sequence:
        # Filter experiment events that are not TOJ trials
        if trial.get('trial_type') != trial_type:
            continue

        # Filter trials without reaction time
        if 'rt' not in trial or trial['rt'] is None:
            continue

        # the plugin records SOAs as formatted strings
        soa = float(trial['soa'])
        response = trial.get('response')

        # compute accuracy
        accuracy = 1 if is_response_correct(soa, response) else 0

        # add results to dictionary
        for column in ('trialIndex', 'blockIndex', 'sequenceLength', 'rank'):
            results_dict[column].append(trial.get(column))
        results_dict['isInstructionNegated'].append(bool(trial.get('isInstructionNegated')))
        results_dict['probeLeft'].append(trial.get('probeLeft'))
        results_dict['soa'].append(soa)
        results_dict['response'].append(response)
        results_dict['rt'].append(float(trial['rt']))
        results_dict['accuracy'].append(float(accuracy))

    # convert dictionary to pandas dataframe
    experiment_data = pd.DataFrame(results_dict)

    return experiment_data
